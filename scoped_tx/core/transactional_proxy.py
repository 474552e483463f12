# Composition wrapper running selected service methods inside TransactionManager.run.

import functools
import inspect
from typing import Any, Generic, Iterable, TypeVar

from scoped_tx.core.transaction_manager import TransactionManager

S = TypeVar("S")


class TransactionalProxy(Generic[S]):
    """Wraps a service so that a fixed set of its coroutine methods run transactionally.

    The method names are given up front and checked when the proxy is built.
    Calls to them go through ``manager.run`` (joining an open transaction or
    starting a root one); every other attribute is read straight from the
    wrapped service.

    Example:
        orders = TransactionalProxy(OrderService(resolver), manager, methods=("place", "cancel"))
        await orders.place(order)
    """

    def __init__(self, target: S, manager: TransactionManager, methods: Iterable[str]) -> None:
        methods = tuple(methods)
        if not methods:
            raise ValueError("TransactionalProxy needs at least one method name to wrap.")

        wrapped = {}
        for name in methods:
            method = getattr(target, name, None)
            if method is None:
                raise TypeError(f"{type(target).__name__} has no method named '{name}'.")
            if not inspect.iscoroutinefunction(method):
                raise TypeError(f"{type(target).__name__}.{name} must be a coroutine function to run transactionally.")
            wrapped[name] = self._wrap(manager, method)

        self._target = target
        self._manager = manager
        self._wrapped = wrapped

    @staticmethod
    def _wrap(manager: TransactionManager, method: Any) -> Any:
        @functools.wraps(method)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await manager.run(functools.partial(method, *args, **kwargs))

        return wrapper

    @property
    def target(self) -> S:
        return self._target

    @property
    def transactional_methods(self) -> tuple[str, ...]:
        return tuple(self._wrapped)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names not set on the proxy itself
        wrapped = self.__dict__.get("_wrapped", {})
        if name in wrapped:
            return wrapped[name]
        if "_target" not in self.__dict__:
            raise AttributeError(name)
        return getattr(self.__dict__["_target"], name)

    def __repr__(self) -> str:
        return f"TransactionalProxy({self._target!r}, methods={self.transactional_methods})"
