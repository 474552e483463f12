"""Database-specific exceptions for scoped_tx."""

from scoped_tx.exceptions import ScopedTxException


class DBOperationError(ScopedTxException):
    """Base exception for database operation errors.

    This exception is raised when a database operation fails for any reason.
    It serves as a base class for more specific database operation errors.
    """

    pass


class DBTransactionError(DBOperationError):
    """Exception raised when a database transaction fails.

    This exception is raised when the native transaction cannot be committed.
    Errors raised by the code running inside the transaction are never wrapped.
    """

    pass


class DBTransactionBeginError(DBTransactionError):
    """Exception raised when the underlying store cannot open a transaction.

    Typical causes are an unreachable database or an exhausted connection pool.
    The failure is surfaced to the caller of ``TransactionManager.run`` and is not retried.
    """

    pass
