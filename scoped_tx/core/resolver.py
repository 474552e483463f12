# Single accessor business code uses to reach the database.

from typing import Any, Optional

from scoped_tx.core.scoped_context import ScopedContextStore
from scoped_tx.core.transaction_context import TransactionContext, transaction_scope
from scoped_tx.db.lifecycle import DatabaseResource


class ResourceResolver:
    """Returns the handle the calling chain should use.

    Inside a transaction that is the transactional handle of the root
    transaction. Outside, it is the default handle owned by the
    DatabaseResource, always the same instance while the resource is ready.
    """

    def __init__(
        self,
        resource: DatabaseResource,
        context_store: Optional[ScopedContextStore[TransactionContext]] = None,
    ) -> None:
        self.resource = resource
        self.context_store = context_store if context_store is not None else transaction_scope

    def get(self) -> Any:
        """Returns the transactional handle if one is visible, else the default handle.

        Raises:
            ResourceNotReadyError: Outside a transaction, before initialize() has completed.
            ResourceClosedError: Outside a transaction, after shutdown().
        """
        context = self.context_store.get_current()
        if context is not None:
            return context.handle
        return self.resource.handle

    def transaction_id(self) -> Optional[str]:
        """Returns the id of the visible transaction, for diagnostics."""
        context = self.context_store.get_current()
        return context.transaction_id if context else None
