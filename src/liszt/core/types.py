"""
Core type definitions for Liszt.

These types represent the registry's entities:
- Building, Unit, Resident

A record with an empty ``id`` has not been registered yet. Registration
always replaces the id with one generated by the backend.
"""

from enum import Enum

from pydantic import BaseModel


# ============================================
# Enums
# ============================================

class EntityKind(str, Enum):
    """Kinds of entities tracked by the registry."""
    BUILDING = "building"
    UNIT = "unit"
    RESIDENT = "resident"
    
    @property
    def collection(self) -> str:
        """Table / collection name for this kind."""
        return f"{self.value}s"


# ============================================
# Entities
# ============================================

class Building(BaseModel):
    """A building containing units."""
    
    id: str = ""
    """Backend-generated identifier."""
    
    name: str = ""
    """Free-form label. Not required to be unique."""


class Unit(BaseModel):
    """A sub-location within a building."""
    
    id: str = ""
    
    name: str = ""
    """Lookup key for get_unit_by_name; registration rejects duplicates."""
    
    building_id: str | None = None


class Resident(BaseModel):
    """
    A person living in a unit.
    
    ``unit_id`` is None for an unassigned resident and is changed
    only through Registrar.move_resident.
    """
    
    id: str = ""
    firstname: str = ""
    middlename: str = ""
    lastname: str = ""
    unit_id: str | None = None
    
    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.firstname, self.middlename, self.lastname) if part)


Entity = Building | Unit | Resident
