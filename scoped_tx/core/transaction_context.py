# Defines the TransactionContext shared by every call joined to a root transaction.

from dataclasses import dataclass
from typing import Any

from scoped_tx.core.scoped_context import ScopedContextStore


@dataclass(frozen=True)
class TransactionContext:
    """Holds the state for a single root transaction.

    One instance is created per root ``TransactionManager.run`` invocation and is
    visible to every call made while its native transaction is open. Nested runs
    read it and never replace it.

    Attributes:
        handle: The transactional handle provided by the underlying store.
        transaction_id: A short identifier used for diagnostics only.
        depth: Nesting level of the invocation that created the context (1 for a root).
    """

    handle: Any
    transaction_id: str
    depth: int = 1

    def __post_init__(self) -> None:
        if self.depth < 1:
            raise ValueError(f"TransactionContext depth must be >= 1, got {self.depth}")


# Default slot shared by the transaction manager, the resolver and the log filter
transaction_scope: ScopedContextStore[TransactionContext] = ScopedContextStore("scoped_tx_transaction")
