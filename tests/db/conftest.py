from typing import AsyncGenerator

import pytest
import pytest_asyncio
from scoped_tx.core.dependencies import build_dependencies
from scoped_tx.core.dependency_container import DependencyContainer
from scoped_tx.db.database_async import SQLAlchemyStore
from sqlmodel import SQLModel

from tests.db.models import Record  # noqa: F401 (registers the table)


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """File-backed SQLite database; each connection sees the same data."""
    return f"sqlite+aiosqlite:///{tmp_path / 'scoped_tx.db'}"


@pytest_asyncio.fixture(scope="function")
async def sqlite_store(mock_settings, sqlite_url) -> AsyncGenerator[SQLAlchemyStore, None]:
    store = SQLAlchemyStore(mock_settings, db_url=sqlite_url)
    yield store
    await store.disconnect()


@pytest_asyncio.fixture(scope="function")
async def sqlite_container(mock_settings, sqlite_store) -> AsyncGenerator[DependencyContainer, None]:
    """Initialized container over a SQLite store with all tables created."""
    container = build_dependencies(mock_settings, store=sqlite_store)
    await container.resource.initialize()

    async with sqlite_store.engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield container
    await container.resource.shutdown()
