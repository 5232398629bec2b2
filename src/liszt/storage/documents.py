"""
Document Registrar - key/document backend.

Each entity kind is a collection directory and each item is one markdown
document named by its id, with the entity fields in YAML frontmatter:

---
type: unit
id: 01HZX3M6W8Q4J2Y7N5R9T0V1KC
name: 4B
building_id: 01HZX3KZ2E8D6F4G1H3J5K7M9N
---

# 4B

Consistency model:
- Writes replace one document atomically; nothing spans documents.
- Reference checks (unique unit names, existing buildings and units) are
  check-then-write, so concurrent writers can slip past them. Last write wins.
- Scans decode every item. One undecodable item fails the whole scan.
"""

import os
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import frontmatter
import yaml
from pydantic import ValidationError

from liszt.core.config import get_logger
from liszt.core.context import RequestContext
from liszt.core.errors import (
    ConflictError,
    CorruptRecordError,
    InvalidArgumentError,
    NotFoundError,
    UnavailableError,
)
from liszt.core.ids import is_valid_id, new_id
from liszt.core.types import Building, Entity, EntityKind, Resident, Unit
from liszt.storage.registrar import (
    Registrar,
    prepare_building,
    prepare_resident,
    prepare_unit,
    require_id,
    require_text,
)

logger = get_logger("storage.documents")

MODELS: dict[EntityKind, type[Entity]] = {
    EntityKind.BUILDING: Building,
    EntityKind.UNIT: Unit,
    EntityKind.RESIDENT: Resident,
}

DELETED_DIR = ".deleted"


class DocumentRegistrar(Registrar):
    """
    Registrar backed by a directory of markdown documents.
    
    Collections are organized by kind:
    - buildings/
    - units/
    - residents/
    """
    
    def __init__(self, root: Path | str, soft_delete: bool = False):
        """Initialize the registrar and create the collections if needed."""
        self.root = Path(root)
        self.soft_delete = soft_delete
        self._ensure_directories()
    
    def _ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for kind in EntityKind:
            (self.root / kind.collection).mkdir(parents=True, exist_ok=True)
        (self.root / DELETED_DIR).mkdir(parents=True, exist_ok=True)
    
    def _path(self, kind: EntityKind, item_id: str) -> Path | None:
        """Document path for an id, or None if the id cannot name a document."""
        if not is_valid_id(item_id):
            return None
        return self.root / kind.collection / f"{item_id}.md"
    
    # ============================================
    # Item codec
    # ============================================
    
    def _heading(self, item: Entity) -> str:
        if isinstance(item, Resident):
            return f"# {item.full_name or item.id}\n"
        return f"# {item.name}\n"
    
    def _read(self, ctx: RequestContext, kind: EntityKind, path: Path) -> Entity | None:
        """Decode one document. Returns None if it does not exist."""
        ctx.check()
        
        try:
            with open(path, encoding="utf-8") as f:
                post = frontmatter.load(f)
        except FileNotFoundError:
            return None
        except (yaml.YAMLError, ValueError) as e:
            logger.error(f"[{ctx.request_id}] Cannot decode {path}: {e}")
            raise CorruptRecordError(f"cannot decode {kind.value} {path.stem}: {e}") from e
        except OSError as e:
            logger.error(f"[{ctx.request_id}] Error reading {path}: {e}")
            raise UnavailableError(f"read {kind.value} {path.stem}: {e}") from e
        
        metadata = dict(post.metadata)
        if metadata.pop("type", None) != kind.value:
            raise CorruptRecordError(f"{path} is not a {kind.value} document")
        
        try:
            item = MODELS[kind].model_validate(metadata)
        except ValidationError as e:
            logger.error(f"[{ctx.request_id}] Invalid {kind.value} document {path}: {e}")
            raise CorruptRecordError(f"cannot decode {kind.value} {path.stem}: {e}") from e
        
        if item.id != path.stem:
            raise CorruptRecordError(f"{path} holds {kind.value} {item.id}")
        return item
    
    def _write(self, ctx: RequestContext, kind: EntityKind, item: Entity) -> None:
        """Replace one document atomically."""
        ctx.check()
        
        path = self.root / kind.collection / f"{item.id}.md"
        post = frontmatter.Post(self._heading(item), type=kind.value, **item.model_dump())
        temp_path = path.with_name(f".{item.id}.{new_id()}.tmp")
        
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(frontmatter.dumps(post))
            os.replace(temp_path, path)
        except UnicodeError as e:
            temp_path.unlink(missing_ok=True)
            raise InvalidArgumentError(f"write {kind.value} {item.id}: text is not valid UTF-8") from e
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            logger.error(f"[{ctx.request_id}] Error writing {path}: {e}")
            raise UnavailableError(f"write {kind.value} {item.id}: {e}") from e
        
        logger.debug(f"Wrote {kind.value} to {path}")
    
    def _get(self, ctx: RequestContext, kind: EntityKind, item_id: str) -> Entity | None:
        path = self._path(kind, item_id)
        if path is None:
            ctx.check()
            return None
        return self._read(ctx, kind, path)
    
    def _scan(
        self,
        ctx: RequestContext,
        kind: EntityKind,
        predicate: Callable[[Entity], bool] | None = None,
    ) -> list[Entity]:
        """Decode every item in a collection, in id order."""
        ctx.check()
        directory = self.root / kind.collection
        
        try:
            paths = sorted(directory.glob("*.md"))
        except OSError as e:
            raise UnavailableError(f"scan {kind.collection}: {e}") from e
        
        items = []
        for path in paths:
            item = self._read(ctx, kind, path)
            # Deleted between listing and reading
            if item is None:
                continue
            if predicate is None or predicate(item):
                items.append(item)
        return items
    
    def _delete(self, ctx: RequestContext, kind: EntityKind, item_id: str) -> bool:
        """
        Delete one document.
        
        If soft_delete is set, moves it to .deleted/ with a timestamp prefix.
        Returns False if there was nothing to delete.
        """
        ctx.check()
        path = self._path(kind, item_id)
        if path is None:
            return False
        
        try:
            if self.soft_delete:
                timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
                target = self.root / DELETED_DIR / f"{timestamp}_{kind.value}_{path.name}"
                shutil.move(path, target)
            else:
                path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"[{ctx.request_id}] Error deleting {path}: {e}")
            raise UnavailableError(f"delete {kind.value} {item_id}: {e}") from e
        
        logger.info(f"[{ctx.request_id}] Deregistered {kind.value} {item_id}")
        return True
    
    # ============================================
    # Buildings
    # ============================================
    
    def register_building(self, ctx: RequestContext, building: Building | None) -> Building:
        building = prepare_building(building)
        self._write(ctx, EntityKind.BUILDING, building)
        logger.info(f"[{ctx.request_id}] Registered building {building.id} ({building.name})")
        return building
    
    def get_building_by_id(self, ctx: RequestContext, building_id: str) -> Building | None:
        return self._get(ctx, EntityKind.BUILDING, building_id)
    
    def list_buildings(self, ctx: RequestContext) -> list[Building]:
        return self._scan(ctx, EntityKind.BUILDING)
    
    def deregister_building(self, ctx: RequestContext, building_id: str) -> None:
        self._delete(ctx, EntityKind.BUILDING, building_id)
    
    # ============================================
    # Units
    # ============================================
    
    def register_unit(self, ctx: RequestContext, unit: Unit | None) -> Unit:
        unit = prepare_unit(unit)
        
        if self.get_unit_by_name(ctx, unit.name) is not None:
            raise ConflictError(f"register unit: name {unit.name!r} is already registered")
        if unit.building_id is not None and self.get_building_by_id(ctx, unit.building_id) is None:
            raise ConflictError(f"register unit: building {unit.building_id} does not exist")
        
        self._write(ctx, EntityKind.UNIT, unit)
        logger.info(f"[{ctx.request_id}] Registered unit {unit.id} ({unit.name})")
        return unit
    
    def get_unit_by_id(self, ctx: RequestContext, unit_id: str) -> Unit | None:
        return self._get(ctx, EntityKind.UNIT, unit_id)
    
    def get_unit_by_name(self, ctx: RequestContext, name: str) -> Unit | None:
        require_text(name, "unit name")
        matches = self._scan(ctx, EntityKind.UNIT, lambda unit: unit.name == name)
        return matches[0] if matches else None
    
    def list_units(self, ctx: RequestContext, building_id: str | None = None) -> list[Unit]:
        if building_id is None:
            return self._scan(ctx, EntityKind.UNIT)
        return self._scan(ctx, EntityKind.UNIT, lambda unit: unit.building_id == building_id)
    
    def deregister_unit(self, ctx: RequestContext, unit_id: str) -> None:
        self._delete(ctx, EntityKind.UNIT, unit_id)
    
    # ============================================
    # Residents
    # ============================================
    
    def register_resident(self, ctx: RequestContext, resident: Resident | None) -> Resident:
        resident = prepare_resident(resident)
        
        if resident.unit_id is not None and self.get_unit_by_id(ctx, resident.unit_id) is None:
            raise NotFoundError(f"unit {resident.unit_id} not found")
        
        self._write(ctx, EntityKind.RESIDENT, resident)
        logger.info(f"[{ctx.request_id}] Registered resident {resident.id}")
        return resident
    
    def get_resident_by_id(self, ctx: RequestContext, resident_id: str) -> Resident | None:
        return self._get(ctx, EntityKind.RESIDENT, resident_id)
    
    def list_unit_residents(self, ctx: RequestContext, unit_id: str) -> list[Resident]:
        return self._scan(ctx, EntityKind.RESIDENT, lambda resident: resident.unit_id == unit_id)
    
    def deregister_resident(self, ctx: RequestContext, resident_id: str) -> None:
        self._delete(ctx, EntityKind.RESIDENT, resident_id)
    
    def move_resident(self, ctx: RequestContext, resident_id: str, unit_id: str) -> None:
        require_id(unit_id, "unit")
        
        resident = self.get_resident_by_id(ctx, resident_id)
        if resident is None:
            raise NotFoundError(f"resident {resident_id} not found")
        if self.get_unit_by_id(ctx, unit_id) is None:
            raise NotFoundError(f"unit {unit_id} not found")
        
        self._write(ctx, EntityKind.RESIDENT, resident.model_copy(update={"unit_id": unit_id}))
        logger.info(f"[{ctx.request_id}] Moved resident {resident_id} to unit {unit_id}")
