"""
Interface module - External interfaces to the registry.

This module contains:
- api.py: FastAPI REST API
- cli.py: Command-line interface
"""

from liszt.interface.api import create_app

__all__ = [
    "create_app",
]
