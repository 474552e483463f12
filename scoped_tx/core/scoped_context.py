# Call-chain scoped values built on contextvars.

import contextlib
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ScopedContextStore(Generic[T]):
    """Carries one value for a call chain and everything it causally spawns.

    The value installed by :meth:`run` is visible to the awaited callable, to any
    coroutine it awaits and to any task it creates (asyncio copies the current
    context when a task is created). Once the callable finishes, the calling chain
    sees whatever it saw before. Chains that never entered :meth:`run` keep
    seeing their own value.

    The store does not know what it carries and performs no validation.
    """

    def __init__(self, name: str, default: Optional[T] = None) -> None:
        self._var: ContextVar[Optional[T]] = ContextVar(name, default=default)

    @property
    def name(self) -> str:
        return self._var.name

    def get_current(self) -> Optional[T]:
        """Returns the value visible to the calling chain, or the store default."""
        return self._var.get()

    @contextlib.contextmanager
    def scope(self, value: T) -> Iterator[T]:
        """Installs ``value`` for the body of the ``with`` block.

        Works from both sync and async code; the previous value is restored on
        exit, whether the block returns or raises.
        """
        token = self._var.set(value)
        try:
            yield value
        finally:
            self._var.reset(token)

    async def run(self, value: T, fn: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any) -> R:
        """Awaits ``fn(*args, **kwargs)`` with ``value`` installed."""
        with self.scope(value):
            return await fn(*args, **kwargs)

    def run_sync(self, value: T, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Calls ``fn(*args, **kwargs)`` with ``value`` installed."""
        with self.scope(value):
            return fn(*args, **kwargs)
