import contextlib
import logging
from typing import AsyncGenerator, Optional

from scoped_tx.core.correlation import make_id_generator
from scoped_tx.core.dependency_container import DependencyContainer
from scoped_tx.core.resolver import ResourceResolver
from scoped_tx.core.transaction_context import transaction_scope
from scoped_tx.core.transaction_manager import TransactionManager
from scoped_tx.db.database_async import SQLAlchemyStore
from scoped_tx.db.lifecycle import DatabaseResource
from scoped_tx.db.store import TransactionalStore
from scoped_tx.settings import Settings

logger = logging.getLogger(__name__)


def build_dependencies(settings: Settings, store: Optional[TransactionalStore] = None) -> DependencyContainer:
    """Wires the transaction machinery without touching the database.

    Args:
        settings: Application settings.
        store: The underlying store; a SQLAlchemyStore configured from settings by default.

    Returns:
        A container whose resource is still UNINITIALIZED.
    """
    if store is None:
        store = SQLAlchemyStore(settings)

    resource = DatabaseResource(
        store,
        shutdown_policy=settings.get_shutdown_policy(),
        shutdown_timeout=settings.get_shutdown_timeout(),
    )
    manager = TransactionManager(
        resource,
        context_store=transaction_scope,
        id_generator=make_id_generator(settings.get_transaction_id_length()),
    )
    resolver = ResourceResolver(resource, context_store=transaction_scope)
    return DependencyContainer(
        settings=settings,
        store=store,
        resource=resource,
        context_store=transaction_scope,
        manager=manager,
        resolver=resolver,
    )


async def initialize_dependencies(
    settings: Settings, store: Optional[TransactionalStore] = None
) -> DependencyContainer:
    """Builds the container and initializes its resource.

    The container is only returned once the default handle is ready, so no
    resolver can be read before the connection exists.

    Raises:
        RuntimeError: If the resource could not be initialized.
    """
    container = build_dependencies(settings, store)
    try:
        await container.resource.initialize()
    except Exception as init_exc:
        logger.critical(f"Fatal error during database resource initialization: {init_exc}", exc_info=True)
        await container.resource.shutdown()
        raise RuntimeError(f"Startup failed due to database initialization error: {init_exc}") from init_exc
    logger.info("Transaction dependencies initialized.")
    return container


@contextlib.asynccontextmanager
async def lifespan(
    settings: Optional[Settings] = None, store: Optional[TransactionalStore] = None
) -> AsyncGenerator[DependencyContainer, None]:
    """Manage the lifespan of the database resource.

    Initializes dependencies on entry and shuts the resource down on exit,
    draining in-flight transactions with the configured policy.

    Yields:
        The initialized DependencyContainer.
    """
    logger.info("Startup sequence initiated.")
    container = await initialize_dependencies(settings or Settings(), store)
    try:
        yield container
    finally:
        logger.info("Shutdown sequence initiated.")
        await container.resource.shutdown()
