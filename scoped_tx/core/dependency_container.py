# Dependency Injection Container.

from scoped_tx.core.resolver import ResourceResolver
from scoped_tx.core.scoped_context import ScopedContextStore
from scoped_tx.core.transaction_context import TransactionContext
from scoped_tx.core.transaction_manager import TransactionManager
from scoped_tx.db.lifecycle import DatabaseResource
from scoped_tx.db.store import TransactionalStore
from scoped_tx.settings import Settings


class DependencyContainer:
    """Holds the shared transaction machinery for an application.

    One container exists per process. Business code only needs ``manager`` and
    ``resolver``; the remaining members are there for wiring, shutdown and tests.
    """

    def __init__(
        self,
        settings: Settings,
        store: TransactionalStore,
        resource: DatabaseResource,
        context_store: ScopedContextStore[TransactionContext],
        manager: TransactionManager,
        resolver: ResourceResolver,
    ) -> None:
        """
        Initializes the container.

        Args:
            settings: Application settings.
            store: The underlying transactional store.
            resource: Lifecycle owner of the store's default handle.
            context_store: Scoped slot carrying the current TransactionContext.
            manager: Join-or-create transaction manager.
            resolver: Handle accessor for business code.
        """
        self.settings = settings
        self.store = store
        self.resource = resource
        self.context_store = context_store
        self.manager = manager
        self.resolver = resolver
