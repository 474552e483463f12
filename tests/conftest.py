import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from scoped_tx.core.resolver import ResourceResolver
from scoped_tx.core.transaction_manager import TransactionManager
from scoped_tx.db.lifecycle import DatabaseResource
from scoped_tx.settings import Settings

from tests.mocks.fake_store import FakeStore


@pytest.fixture(autouse=True)
def override_settings_dependency():
    """AUTOUSE: Loads .env.test if present and restores the original environment afterwards."""
    project_root = Path(__file__).parent.parent
    original_environ = os.environ.copy()  # Store original environment

    env_file_path = project_root / ".env.test"
    if env_file_path.exists():
        load_dotenv(dotenv_path=env_file_path, override=True)

    yield  # Allow test to run

    os.environ.clear()
    os.environ.update(original_environ)


@pytest.fixture
def mock_settings() -> MagicMock:
    """Provides a mock Settings instance."""
    settings = MagicMock(spec=Settings)
    settings.get_shutdown_policy.return_value = "wait"
    settings.get_shutdown_timeout.return_value = 1.0
    settings.get_transaction_id_length.return_value = 12
    settings.get_db_echo.return_value = False
    settings.get_main_db_pool_min_size.return_value = 1
    settings.get_main_db_pool_max_size.return_value = 10
    return settings


@pytest.fixture
def fake_store() -> FakeStore:
    """Provides an unconnected in-memory store."""
    return FakeStore()


@pytest.fixture
def resource(fake_store: FakeStore) -> DatabaseResource:
    """Provides an UNINITIALIZED DatabaseResource over the fake store."""
    return DatabaseResource(fake_store, shutdown_timeout=1.0)


@pytest_asyncio.fixture
async def ready_resource(resource: DatabaseResource):
    """Provides an initialized DatabaseResource, shut down after the test."""
    await resource.initialize()
    yield resource
    await resource.shutdown()


@pytest.fixture
def manager(resource: DatabaseResource) -> TransactionManager:
    return TransactionManager(resource)


@pytest.fixture
def resolver(resource: DatabaseResource) -> ResourceResolver:
    return ResourceResolver(resource)
