# Join-or-create orchestration of native transactions.

import logging
import weakref
from typing import Any, Awaitable, Callable, Optional, TypeVar

from scoped_tx.core.correlation import generate_transaction_id
from scoped_tx.core.scoped_context import ScopedContextStore
from scoped_tx.core.transaction_context import TransactionContext, transaction_scope
from scoped_tx.db.lifecycle import DatabaseResource

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Join depth per context store; managers sharing a context store share the count.
_depth_slots: "weakref.WeakKeyDictionary[ScopedContextStore, ScopedContextStore[int]]" = weakref.WeakKeyDictionary()


def _depth_slot(context_store: ScopedContextStore) -> ScopedContextStore[int]:
    slot = _depth_slots.get(context_store)
    if slot is None:
        slot = ScopedContextStore(f"{context_store.name}_depth", default=0)
        _depth_slots[context_store] = slot
    return slot


class TransactionManager:
    """Runs callbacks inside the transaction of the current call chain, opening one if needed.

    The first :meth:`run` in a call chain (the root) opens exactly one native
    transaction through the store and makes a :class:`TransactionContext` visible
    to everything the callback calls. Any :meth:`run` issued while that context is
    visible joins it: the callback is simply awaited, and its writes commit or
    roll back together with the root.

    Errors raised by callbacks are never caught, translated or retried here; they
    roll the native transaction back and reach the caller unchanged.
    """

    def __init__(
        self,
        resource: DatabaseResource,
        context_store: Optional[ScopedContextStore[TransactionContext]] = None,
        id_generator: Callable[[], str] = generate_transaction_id,
    ) -> None:
        self.resource = resource
        self.context_store = context_store if context_store is not None else transaction_scope
        self._id_generator = id_generator
        self._depth = _depth_slot(self.context_store)

    def current(self) -> Optional[TransactionContext]:
        """Returns the transaction context visible to the calling chain, if any."""
        return self.context_store.get_current()

    def in_transaction(self) -> bool:
        return self.current() is not None

    def current_depth(self) -> int:
        """How many run() calls are active in the calling chain (0 outside any transaction)."""
        return self._depth.get_current() or 0

    async def run(self, callback: Callable[[], Awaitable[T]]) -> T:
        """Awaits ``callback()`` inside the current transaction, or a new one.

        Args:
            callback: A zero-argument coroutine function. It reaches the database
                through ``ResourceResolver.get()``.

        Returns:
            Whatever ``callback`` returns, after the root transaction committed.

        Raises:
            ResourceNotReadyError: If a root transaction is requested before initialization.
            ResourceClosedError: If a root transaction is requested during or after shutdown.
            DBTransactionBeginError: If the store cannot open a transaction.
            Exception: Anything raised by ``callback``, unchanged.
        """
        context = self.current()
        if context is not None:
            depth = self.current_depth() + 1
            logger.debug(f"[{context.transaction_id}] Joining open transaction at depth {depth}")
            return await self._depth.run(depth, callback)

        return await self._run_root(callback)

    async def _run_root(self, callback: Callable[[], Awaitable[T]]) -> T:
        transaction_id = self._id_generator()

        async def _in_transaction(handle: Any) -> T:
            context = TransactionContext(handle=handle, transaction_id=transaction_id, depth=1)
            with self._depth.scope(1):
                return await self.context_store.run(context, callback)

        async with self.resource.track_transaction():
            logger.debug(f"[{transaction_id}] Beginning root transaction")
            try:
                result = await self.resource.store.begin_interactive_transaction(_in_transaction)
            except BaseException as e:
                logger.debug(f"[{transaction_id}] Root transaction did not commit: {type(e).__name__}")
                raise
            logger.debug(f"[{transaction_id}] Root transaction committed")
            return result
