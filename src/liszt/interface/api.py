"""
FastAPI layer over a Registrar.

Provides REST endpoints for:
- Building registration and lookup
- Unit registration, lookup by name, and resident listing
- Resident registration, moves and removal

Registrar results of None become 404 responses. Every error body has the
shape {"code": <status>, "message": <text>}.
"""

from collections.abc import Generator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from liszt import __version__
from liszt.core.config import Settings, settings as default_settings, get_logger
from liszt.core.context import RequestContext
from liszt.core.errors import (
    ConflictError,
    DeadlineExceededError,
    InvalidArgumentError,
    NotFoundError,
    RegistryError,
)
from liszt.core.types import Building, Resident, Unit
from liszt.storage.registrar import Registrar, create_registrar

logger = get_logger("api")

NOT_FOUND_MESSAGE = "Not Found"

# Checked in order; subclasses before their bases
ERROR_STATUS: list[tuple[type[RegistryError], int]] = [
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (DeadlineExceededError, status.HTTP_504_GATEWAY_TIMEOUT),
]


def error_body(code: int, message: str) -> dict:
    return {"code": code, "message": message}


def status_for(error: RegistryError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_503_SERVICE_UNAVAILABLE


def not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)


# ==========================================
# Dependencies
# ==========================================

def get_registrar(request: Request) -> Registrar:
    return request.app.state.registrar


def get_context(request: Request) -> Generator[RequestContext, None, None]:
    """A context bounded by the configured request timeout."""
    ctx = RequestContext.with_timeout(request.app.state.settings.request_timeout)
    try:
        yield ctx
    finally:
        # Abandon any work still running for this request
        ctx.cancel()


# ==========================================
# Request Models
# ==========================================

class MoveResidentRequest(BaseModel):
    resident_id: str
    unit_id: str


router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok", "version": __version__}


# ==========================================
# Buildings
# ==========================================

@router.get("/buildings", response_model=list[Building])
def list_buildings(
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    return registrar.list_buildings(ctx)


@router.post("/buildings/register", response_model=Building, status_code=status.HTTP_201_CREATED)
def register_building(
    building: Building,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    return registrar.register_building(ctx, building)


@router.get("/buildings/{building_id}", response_model=Building)
def get_building(
    building_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    building = registrar.get_building_by_id(ctx, building_id)
    if building is None:
        raise not_found()
    return building


@router.delete("/buildings/{building_id}", status_code=status.HTTP_204_NO_CONTENT)
def deregister_building(
    building_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    registrar.deregister_building(ctx, building_id)


# ==========================================
# Units
# ==========================================

@router.get("/units", response_model=Unit)
def get_unit_by_name(
    unit: str = Query(..., min_length=1, description="Unit name"),
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    found = registrar.get_unit_by_name(ctx, unit)
    if found is None:
        raise not_found()
    return found


@router.get("/units/residents", response_model=list[Resident])
def list_unit_residents(
    unit_id: str = Query(..., min_length=1),
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    if registrar.get_unit_by_id(ctx, unit_id) is None:
        raise not_found()
    return registrar.list_unit_residents(ctx, unit_id)


@router.post("/units/register", response_model=Unit, status_code=status.HTTP_201_CREATED)
def register_unit(
    unit: Unit,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    return registrar.register_unit(ctx, unit)


@router.get("/units/{unit_id}", response_model=Unit)
def get_unit(
    unit_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    unit = registrar.get_unit_by_id(ctx, unit_id)
    if unit is None:
        raise not_found()
    return unit


@router.delete("/units/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
def deregister_unit(
    unit_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    registrar.deregister_unit(ctx, unit_id)


# ==========================================
# Residents
# ==========================================

@router.post("/residents/register", response_model=Resident, status_code=status.HTTP_201_CREATED)
def register_resident(
    resident: Resident,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    return registrar.register_resident(ctx, resident)


@router.post("/residents/move", status_code=status.HTTP_204_NO_CONTENT)
def move_resident(
    move: MoveResidentRequest,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    registrar.move_resident(ctx, move.resident_id, move.unit_id)


@router.get("/residents/{resident_id}", response_model=Resident)
def get_resident(
    resident_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    resident = registrar.get_resident_by_id(ctx, resident_id)
    if resident is None:
        raise not_found()
    return resident


@router.delete("/residents/{resident_id}", status_code=status.HTTP_204_NO_CONTENT)
def deregister_resident(
    resident_id: str,
    registrar: Registrar = Depends(get_registrar),
    ctx: RequestContext = Depends(get_context),
):
    registrar.deregister_resident(ctx, resident_id)


# ==========================================
# Error Handlers
# ==========================================

async def handle_registry_error(request: Request, exc: RegistryError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=code, content=error_body(code, exc.message))


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content=error_body(code, str(exc.errors())))


def create_app(registrar: Registrar | None = None, config: Settings | None = None) -> FastAPI:
    """
    Build the API application around one registrar.
    
    If no registrar is given, one is created from configuration.
    """
    config = config or default_settings
    
    app = FastAPI(
        title="Liszt Registry API",
        description="Buildings, units and residents",
        version=__version__,
    )
    app.state.settings = config
    app.state.registrar = registrar or create_registrar(config)
    
    app.include_router(router)
    app.add_exception_handler(RegistryError, handle_registry_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    
    return app
