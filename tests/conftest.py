"""
Pytest configuration and fixtures for Liszt tests.
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Set test environment before importing app modules
os.environ["LISZT_DATA_DIR"] = tempfile.mkdtemp()
os.environ["LISZT_BACKEND"] = "sql"

from liszt.core.context import RequestContext
from liszt.storage.documents import DocumentRegistrar
from liszt.storage.registrar import Registrar
from liszt.storage.sql import SQLRegistrar


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ctx() -> RequestContext:
    """A generous deadline so a hung backend fails the test instead of blocking."""
    return RequestContext.with_timeout(30)


@pytest.fixture
def sql_registrar(temp_data_dir) -> Generator[SQLRegistrar, None, None]:
    with SQLRegistrar(temp_data_dir / "registry.sqlite") as registrar:
        yield registrar


@pytest.fixture
def document_registrar(temp_data_dir) -> Generator[DocumentRegistrar, None, None]:
    with DocumentRegistrar(temp_data_dir / "documents") as registrar:
        yield registrar


@pytest.fixture(params=["sql", "document"])
def registrar(request, temp_data_dir) -> Generator[Registrar, None, None]:
    """Each backend in turn; contract tests run against both."""
    if request.param == "sql":
        instance: Registrar = SQLRegistrar(temp_data_dir / "registry.sqlite")
    else:
        instance = DocumentRegistrar(temp_data_dir / "documents")
    with instance:
        yield instance


@pytest.fixture
def sample_resident_data() -> dict:
    """Sample resident data for testing."""
    return {
        "firstname": "Josiah",
        "middlename": "Edward",
        "lastname": "Bartlet",
    }
