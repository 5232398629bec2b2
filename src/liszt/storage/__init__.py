"""
Storage Layer - Registrar interface and its backends.

1. SQLRegistrar → SQLite tables, transactional writes
2. DocumentRegistrar → one markdown document per item, single-item writes

Callers hold a Registrar and never depend on which backend is behind it.
"""

from liszt.storage.registrar import Registrar, create_registrar
from liszt.storage.sql import SQLRegistrar
from liszt.storage.documents import DocumentRegistrar

__all__ = [
    "Registrar",
    "create_registrar",
    "SQLRegistrar",
    "DocumentRegistrar",
]
