# Correlation ids for root transactions.

import logging
import uuid
from typing import Callable, Optional

from scoped_tx.core.scoped_context import ScopedContextStore
from scoped_tx.core.transaction_context import TransactionContext

DEFAULT_TRANSACTION_ID_LENGTH = 12

# Placeholder written to log records emitted outside of any transaction
NO_TRANSACTION_ID = "-"


def generate_transaction_id(length: int = DEFAULT_TRANSACTION_ID_LENGTH) -> str:
    """Generates a short random identifier for a root transaction.

    Args:
        length: Number of hex characters to keep (4 to 32).

    Returns:
        A lowercase hex string of the requested length.
    """
    if not 4 <= length <= 32:
        raise ValueError(f"Transaction id length must be between 4 and 32, got {length}")
    return uuid.uuid4().hex[:length]


def make_id_generator(length: int) -> Callable[[], str]:
    """Returns a zero-argument generator producing ids of a fixed length."""
    if not 4 <= length <= 32:
        raise ValueError(f"Transaction id length must be between 4 and 32, got {length}")

    def _generate() -> str:
        return generate_transaction_id(length)

    return _generate


class TransactionIdLogFilter(logging.Filter):
    """Adds ``transaction_id`` to every record passing through a handler.

    The id is read from the given context store, so records emitted anywhere inside
    a root transaction carry its id and records emitted outside carry ``-``.
    """

    def __init__(self, context_store: ScopedContextStore[TransactionContext], name: str = "") -> None:
        super().__init__(name)
        self.context_store = context_store

    def filter(self, record: logging.LogRecord) -> bool:
        context: Optional[TransactionContext] = self.context_store.get_current()
        record.transaction_id = context.transaction_id if context else NO_TRANSACTION_ID
        return True
