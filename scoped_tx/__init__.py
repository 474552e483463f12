"""Call-chain scoped database transactions with join-or-create semantics."""

from scoped_tx.core.correlation import TransactionIdLogFilter, generate_transaction_id
from scoped_tx.core.dependencies import build_dependencies, initialize_dependencies, lifespan
from scoped_tx.core.dependency_container import DependencyContainer
from scoped_tx.core.resolver import ResourceResolver
from scoped_tx.core.scoped_context import ScopedContextStore
from scoped_tx.core.transaction_context import TransactionContext, transaction_scope
from scoped_tx.core.transaction_manager import TransactionManager
from scoped_tx.core.transactional_proxy import TransactionalProxy
from scoped_tx.db.database_async import EngineHandle, SQLAlchemyStore
from scoped_tx.db.exceptions import DBOperationError, DBTransactionBeginError, DBTransactionError
from scoped_tx.db.lifecycle import DatabaseResource, ResourceState, ShutdownPolicy
from scoped_tx.db.store import TransactionalStore
from scoped_tx.exceptions import (
    DBConfigurationError,
    DBConnectionError,
    LifecycleError,
    ResourceClosedError,
    ResourceNotReadyError,
    ScopedTxException,
)
from scoped_tx.settings import Settings

__all__ = [
    "DBConfigurationError",
    "DBConnectionError",
    "DBOperationError",
    "DBTransactionBeginError",
    "DBTransactionError",
    "DatabaseResource",
    "DependencyContainer",
    "EngineHandle",
    "LifecycleError",
    "ResourceClosedError",
    "ResourceNotReadyError",
    "ResourceResolver",
    "ResourceState",
    "SQLAlchemyStore",
    "ScopedContextStore",
    "ScopedTxException",
    "Settings",
    "ShutdownPolicy",
    "TransactionContext",
    "TransactionIdLogFilter",
    "TransactionManager",
    "TransactionalProxy",
    "TransactionalStore",
    "build_dependencies",
    "generate_transaction_id",
    "initialize_dependencies",
    "lifespan",
    "transaction_scope",
]
