"""Shared pytest configuration and fixtures for tests."""

import asyncio
import sys
import io
from pathlib import Path

import pytest

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lumina.core.database import Database  # noqa: E402
from lumina.core.storage import JsonStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    """Durable store in a temporary data directory."""
    return JsonStore(tmp_path / "data")


@pytest.fixture
def database(store):
    """Database that has not been initialized yet."""
    db = Database(store)
    yield db
    db.close()


@pytest.fixture
def ready_db(database):
    """Initialized, empty database."""
    asyncio.run(database.initialize())
    return database
