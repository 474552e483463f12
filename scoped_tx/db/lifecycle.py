"""Readiness and shutdown of the default (non-transactional) resource handle."""

import asyncio
import contextlib
import enum
import logging
from typing import Any, AsyncGenerator, Dict, Iterable, Optional

from psygnal import Signal

from scoped_tx.db.store import TransactionalStore
from scoped_tx.exceptions import ResourceClosedError, ResourceNotReadyError

logger = logging.getLogger(__name__)


class ResourceState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class ShutdownPolicy(str, enum.Enum):
    """What shutdown() does with root transactions that are still open.

    WAIT lets them finish, cancelling whatever is left once the timeout expires.
    CANCEL cancels them right away.
    """

    WAIT = "wait"
    CANCEL = "cancel"


class DatabaseResource:
    """Owns the store connection and gates access to its default handle.

    The default handle is only handed out after :meth:`initialize` has completed
    and until :meth:`shutdown` has released the connection. Reading it at any
    other time raises a lifecycle error; nothing here ever connects implicitly.

    Root transactions register themselves through :meth:`track_transaction` so
    that shutdown can drain them before the connection is released.
    """

    state_changed = Signal(ResourceState)

    def __init__(
        self,
        store: TransactionalStore,
        shutdown_policy: ShutdownPolicy | str = ShutdownPolicy.WAIT,
        shutdown_timeout: float = 30.0,
    ) -> None:
        self._store = store
        self._state = ResourceState.UNINITIALIZED
        self._shutdown_policy = ShutdownPolicy(shutdown_policy)
        self._shutdown_timeout = shutdown_timeout
        self._lock = asyncio.Lock()
        # Task -> number of root transactions it currently has open
        self._in_flight: Dict[Optional[asyncio.Task], int] = {}
        self._in_flight_changed = asyncio.Event()

    @property
    def store(self) -> TransactionalStore:
        return self._store

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def in_flight_count(self) -> int:
        """Number of root transactions currently open."""
        return sum(self._in_flight.values())

    @property
    def handle(self) -> Any:
        """The default handle of the store.

        Raises:
            ResourceNotReadyError: If initialize() has not completed.
            ResourceClosedError: If shutdown() has completed.
        """
        if self._state in (ResourceState.READY, ResourceState.CLOSING):
            return self._store.default_handle
        self._raise_for_state()

    def require_ready(self) -> None:
        """Raises a lifecycle error unless the resource accepts new transactions."""
        if self._state is not ResourceState.READY:
            self._raise_for_state()

    def _raise_for_state(self) -> None:
        if self._state is ResourceState.UNINITIALIZED:
            raise ResourceNotReadyError("Database resource has not been initialized; call initialize() first.")
        if self._state is ResourceState.CLOSING:
            raise ResourceClosedError("Database resource is shutting down and does not accept new transactions.")
        raise ResourceClosedError("Database resource has been shut down.")

    def _set_state(self, state: ResourceState) -> None:
        previous, self._state = self._state, state
        logger.debug(f"Database resource state {previous.value} -> {state.value}")
        self.state_changed.emit(state)

    async def initialize(self) -> None:
        """Connects the store and marks the default handle ready.

        Raises:
            ResourceClosedError: If the resource has already been shut down.
            Exception: Whatever the store raises when connecting; the state stays UNINITIALIZED.
        """
        async with self._lock:
            if self._state is ResourceState.READY:
                logger.debug("Database resource already initialized.")
                return
            if self._state is not ResourceState.UNINITIALIZED:
                raise ResourceClosedError("Database resource has been shut down and cannot be re-initialized.")

            logger.info("Initializing database resource...")
            await self._store.connect()
            self._set_state(ResourceState.READY)
            logger.info("Database resource ready.")

    @contextlib.asynccontextmanager
    async def track_transaction(self) -> AsyncGenerator[None, None]:
        """Registers the current task as running a root transaction for the body of the block.

        Raises:
            ResourceNotReadyError: If initialize() has not completed.
            ResourceClosedError: If shutdown() has started.
        """
        self.require_ready()
        task = asyncio.current_task()
        self._in_flight[task] = self._in_flight.get(task, 0) + 1
        try:
            yield
        finally:
            remaining = self._in_flight.pop(task) - 1
            if remaining:
                self._in_flight[task] = remaining
            self._in_flight_changed.set()

    async def _wait_for(self, tasks: Iterable[Optional[asyncio.Task]]) -> None:
        tasks = set(tasks)
        while any(task in self._in_flight for task in tasks):
            self._in_flight_changed.clear()
            await self._in_flight_changed.wait()

    async def _drain(self, policy: ShutdownPolicy, timeout: float) -> None:
        current = asyncio.current_task()
        pending = {task for task in self._in_flight if task is not current}
        if not pending:
            return

        if policy is ShutdownPolicy.WAIT:
            logger.info(f"Waiting up to {timeout}s for {len(pending)} in-flight transaction(s) to finish.")
            try:
                await asyncio.wait_for(self._wait_for(pending), timeout=timeout)
                return
            except asyncio.TimeoutError:
                pending = {task for task in pending if task in self._in_flight}
                logger.warning(f"{len(pending)} transaction(s) still open after {timeout}s; cancelling them.")
        else:
            logger.warning(f"Cancelling {len(pending)} in-flight transaction(s).")

        for task in pending:
            if task is not None:
                task.cancel("database resource shutting down")
        # Cancelled transactions roll back before their task leaves track_transaction()
        await self._wait_for(pending)

    async def shutdown(self, policy: ShutdownPolicy | str | None = None, timeout: float | None = None) -> None:
        """Drains in-flight root transactions, then disconnects the store.

        Args:
            policy: Overrides the configured ShutdownPolicy.
            timeout: Overrides the configured number of seconds WAIT lets transactions run.
        """
        policy = ShutdownPolicy(policy) if policy is not None else self._shutdown_policy
        timeout = self._shutdown_timeout if timeout is None else timeout

        async with self._lock:
            if self._state is ResourceState.CLOSED:
                logger.info("Database resource was already shut down.")
                return
            if self._state is ResourceState.UNINITIALIZED:
                logger.info("Database resource was never initialized; marking it closed.")
                self._set_state(ResourceState.CLOSED)
                return

            logger.info("Database resource shutdown initiated.")
            self._set_state(ResourceState.CLOSING)
            try:
                await self._drain(policy, timeout)
                await self._store.disconnect()
            finally:
                self._set_state(ResourceState.CLOSED)
            logger.info("Database resource shut down.")
