# Contract the transaction manager expects from the underlying store.

from typing import Any, Awaitable, Callable, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class TransactionalStore(Protocol):
    """A single transactional resource reachable through one native primitive.

    Implementations hold the real driver/engine; the coordination layer holds an
    implementation rather than extending one.
    """

    @property
    def default_handle(self) -> Any:
        """The non-transactional handle. Only valid between connect() and disconnect()."""
        ...

    async def connect(self) -> None:
        """Establishes the resource backing the default handle."""
        ...

    async def disconnect(self) -> None:
        """Tears down the resource backing the default handle."""
        ...

    async def begin_interactive_transaction(self, fn: Callable[[Any], Awaitable[T]]) -> T:
        """Awaits ``fn(handle)`` inside one native transaction.

        Commits when ``fn`` returns and returns its value; rolls back when ``fn``
        raises and re-raises the same exception.
        """
        ...
