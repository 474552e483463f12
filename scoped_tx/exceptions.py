class ScopedTxException(Exception):
    """Base exception for all scoped_tx errors."""

    pass


class DBConfigurationError(ScopedTxException):
    """Exception raised when a database configuration is invalid or missing required variables."""

    pass


class DBConnectionError(ScopedTxException):
    """Exception raised when a connection to the database fails."""

    pass


class LifecycleError(ScopedTxException):
    """Base exception for using the default resource outside of its ready state."""

    pass


class ResourceNotReadyError(LifecycleError):
    """Exception raised when the default resource is used before initialize() has completed."""

    pass


class ResourceClosedError(LifecycleError):
    """Exception raised when the default resource is used after shutdown()."""

    pass
