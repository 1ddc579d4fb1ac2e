import sys
import pytest
from pathlib import Path

# Add project root (2 levels up from tests/) to sys.path so tests can import 'walky'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))


# Optionally set PYTHONPATH for runtime
import os
os.environ.setdefault('PYTHONPATH', str(root))

# Tests never talk to a real Redis; the app-level hub built at import time is
# replaced per test by the `hub` fixture below.
os.environ.setdefault('PRESENCE_MIRROR_ENABLED', 'false')


from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from walky.models.database import Base as DBBase
import walky.models.database as database_module
from walky.main import app
from walky.services.hub import RelayHub


@pytest.fixture
def async_db(tmp_path):
    """Point the app's database module at a fresh SQLite file for this test.

    Tables are created with a plain sync engine; the async engine uses
    NullPool so every session opens its own connection on whichever event
    loop is running (pytest-asyncio's or the TestClient portal's).
    """
    db_path = tmp_path / "walky_test.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    DBBase.metadata.create_all(sync_engine)
    sync_engine.dispose()

    test_engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    async_session = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    original_engine = database_module.engine
    original_session = database_module.AsyncSessionLocal
    database_module.engine = test_engine
    database_module.AsyncSessionLocal = async_session

    # Provide a dependency override for FastAPI to use the test session
    async def _get_test_db():
        async with async_session() as session:
            yield session

    app.dependency_overrides[database_module.get_db] = _get_test_db
    yield async_session
    app.dependency_overrides.clear()

    database_module.engine = original_engine
    database_module.AsyncSessionLocal = original_session


@pytest.fixture
def hub(async_db):
    """Fresh registry and services for each test (no Redis mirror)."""
    test_hub = RelayHub(session_factory=async_db)
    previous = app.state.hub
    app.state.hub = test_hub
    yield test_hub
    app.state.hub = previous


@pytest.fixture
def client(hub):
    with TestClient(app) as test_client:
        yield test_client
