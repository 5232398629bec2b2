"""
Liszt

A directory-style registry of buildings, units and residents,
with interchangeable relational and document storage backends.
"""

__version__ = "0.1.0"
__author__ = "Liszt Team"

from liszt.core.config import settings
from liszt.core.context import RequestContext
from liszt.core.types import Building, EntityKind, Resident, Unit
from liszt.storage.registrar import Registrar, create_registrar

__all__ = [
    "settings",
    "RequestContext",
    "Building",
    "EntityKind",
    "Resident",
    "Unit",
    "Registrar",
    "create_registrar",
]
