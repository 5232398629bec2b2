"""
Registrar - the storage-agnostic contract for registry operations.

Both backends implement this interface with the same observable behavior:

- Get* and List* never raise for missing entities; they return None or [].
- Deregister* is a no-op for ids that do not exist.
- Register* ignores caller-supplied ids and assigns a fresh one.
- move_resident is the only operation that changes Resident.unit_id.

Backends may differ only in consistency: the SQL backend checks references
inside a transaction, the document backend checks then writes.
"""

from abc import ABC, abstractmethod

from liszt.core.config import Settings, settings as default_settings, get_logger
from liszt.core.context import RequestContext
from liszt.core.errors import InvalidArgumentError
from liszt.core.ids import new_id
from liszt.core.types import Building, Resident, Unit

logger = get_logger("storage.registrar")


# ============================================
# Input validation shared by all backends
# ============================================

def require_text(value: str | None, what: str) -> None:
    """Reject text that cannot be stored as UTF-8, such as lone surrogates."""
    if value is None:
        return
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidArgumentError(f"{what} is not valid UTF-8") from e


def prepare_building(building: Building | None) -> Building:
    """Validate a building for registration and give it a fresh id."""
    if building is None or not building.name:
        raise InvalidArgumentError("building name is required")
    require_text(building.name, "building name")
    return building.model_copy(update={"id": new_id()})


def prepare_unit(unit: Unit | None) -> Unit:
    """Validate a unit for registration and give it a fresh id."""
    if unit is None or not unit.name:
        raise InvalidArgumentError("unit name is required")
    require_text(unit.name, "unit name")
    require_text(unit.building_id, "building id")
    return unit.model_copy(update={"id": new_id(), "building_id": unit.building_id or None})


def prepare_resident(resident: Resident | None) -> Resident:
    """Validate a resident for registration and give it a fresh id."""
    if resident is None:
        raise InvalidArgumentError("resident is required")
    for field in ("firstname", "middlename", "lastname", "unit_id"):
        require_text(getattr(resident, field), f"resident {field}")
    return resident.model_copy(update={"id": new_id(), "unit_id": resident.unit_id or None})


def require_id(value: str, what: str) -> None:
    if not value:
        raise InvalidArgumentError(f"{what} id is required")


class Registrar(ABC):
    """Lifecycle operations for buildings, units and residents."""
    
    # ==========================================
    # Buildings
    # ==========================================
    
    @abstractmethod
    def register_building(self, ctx: RequestContext, building: Building | None) -> Building:
        """Store a new building and return it with its generated id."""
    
    @abstractmethod
    def get_building_by_id(self, ctx: RequestContext, building_id: str) -> Building | None:
        """Return the building, or None if it does not exist."""
    
    @abstractmethod
    def list_buildings(self, ctx: RequestContext) -> list[Building]:
        """Return all buildings in id order."""
    
    @abstractmethod
    def deregister_building(self, ctx: RequestContext, building_id: str) -> None:
        """Remove a building. Units that reference it are left dangling."""
    
    # ==========================================
    # Units
    # ==========================================
    
    @abstractmethod
    def register_unit(self, ctx: RequestContext, unit: Unit | None) -> Unit:
        """
        Store a new unit and return it with its generated id.
        
        Raises ConflictError if the name is taken or the building
        does not exist.
        """
    
    @abstractmethod
    def get_unit_by_id(self, ctx: RequestContext, unit_id: str) -> Unit | None:
        ...
    
    @abstractmethod
    def get_unit_by_name(self, ctx: RequestContext, name: str) -> Unit | None:
        ...
    
    @abstractmethod
    def list_units(self, ctx: RequestContext, building_id: str | None = None) -> list[Unit]:
        """Return all units, or the units of one building, in id order."""
    
    @abstractmethod
    def deregister_unit(self, ctx: RequestContext, unit_id: str) -> None:
        """Remove a unit. Residents that reference it are left dangling."""
    
    # ==========================================
    # Residents
    # ==========================================
    
    @abstractmethod
    def register_resident(self, ctx: RequestContext, resident: Resident | None) -> Resident:
        """
        Store a new resident and return it with its generated id.
        
        Raises NotFoundError if unit_id is set and the unit does not exist.
        """
    
    @abstractmethod
    def get_resident_by_id(self, ctx: RequestContext, resident_id: str) -> Resident | None:
        ...
    
    @abstractmethod
    def list_unit_residents(self, ctx: RequestContext, unit_id: str) -> list[Resident]:
        """Return the residents assigned to a unit in id order."""
    
    @abstractmethod
    def deregister_resident(self, ctx: RequestContext, resident_id: str) -> None:
        ...
    
    @abstractmethod
    def move_resident(self, ctx: RequestContext, resident_id: str, unit_id: str) -> None:
        """
        Assign a resident to a unit.
        
        Raises NotFoundError if either the resident or the destination
        unit does not exist.
        """
    
    # ==========================================
    # Resources
    # ==========================================
    
    def close(self) -> None:
        """Release the backend's storage handle."""
    
    def __enter__(self):
        return self
    
    def __exit__(self, *exc_info) -> None:
        self.close()


def create_registrar(config: Settings | None = None) -> Registrar:
    """Construct the registrar selected by configuration."""
    config = config or default_settings
    
    if config.backend == "sql":
        from liszt.storage.sql import SQLRegistrar
        
        registrar: Registrar = SQLRegistrar(config.database_path)
    elif config.backend == "document":
        from liszt.storage.documents import DocumentRegistrar
        
        registrar = DocumentRegistrar(config.documents_dir, soft_delete=config.soft_delete)
    else:
        raise ValueError(f"Unknown backend: {config.backend}")
    
    logger.info(f"Using {config.backend} registrar")
    return registrar
