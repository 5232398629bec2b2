"""
Core module - Configuration, types, identifiers, errors and request context.
"""

from liszt.core.config import settings
from liszt.core.context import RequestContext
from liszt.core.errors import (
    CancelledError,
    ConflictError,
    CorruptRecordError,
    DeadlineExceededError,
    InvalidArgumentError,
    NotFoundError,
    RegistryError,
    UnavailableError,
)
from liszt.core.ids import new_id
from liszt.core.types import Building, EntityKind, Resident, Unit

__all__ = [
    "settings",
    "RequestContext",
    "CancelledError",
    "ConflictError",
    "CorruptRecordError",
    "DeadlineExceededError",
    "InvalidArgumentError",
    "NotFoundError",
    "RegistryError",
    "UnavailableError",
    "new_id",
    "Building",
    "EntityKind",
    "Resident",
    "Unit",
]
