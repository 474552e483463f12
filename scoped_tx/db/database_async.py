import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar
from urllib.parse import urlparse, urlunparse

from sqlalchemy.engine import Result, ScalarResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from scoped_tx.db.exceptions import DBTransactionBeginError, DBTransactionError
from scoped_tx.exceptions import DBConfigurationError, DBConnectionError, ResourceNotReadyError
from scoped_tx.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _mask_password(url: str) -> str:
    """Masks the password in the database URL."""
    parsed = urlparse(url)
    if parsed.password:
        return urlunparse(parsed._replace(netloc=f"{parsed.username}:***@{parsed.hostname}:{parsed.port}"))
    return url


def _get_db_url(settings: Settings) -> str:
    """Determines the database URL, converting to asyncpg URL if needed

    Returns:
        The database URL as a string.

    Raises:
        DBConfigurationError: If missing required variables.
    """
    database_url = settings.get_database_url()

    if database_url:
        logger.info("Using DATABASE_URL for database connection.")

        # Convert to async URL if needed
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)

        return database_url

    logger.info("DATABASE_URL not found. Falling back to individual DB_* variables.")

    db_vars = dict(
        user=settings.get_postgres_user(),
        password=settings.get_postgres_password(),
        host=settings.get_postgres_host(),
        port=settings.get_postgres_port(),
        dbname=settings.get_postgres_db(),
    )

    if not all(db_vars.values()):
        missing_vars = [k.upper() for k, v in db_vars.items() if v is None]
        raise DBConfigurationError(
            f"DATABASE_URL not set, and missing required DB_* variables to construct URL: {missing_vars}"
        )

    async_url = f"postgresql+asyncpg://{db_vars['user']}:{db_vars['password']}@{db_vars['host']}:{db_vars['port']}/{db_vars['dbname']}"
    logger.debug(f"Constructed database URL from individual variables: {_mask_password(async_url)}")
    return async_url


async def _run_to_completion(operation: Awaitable[T]) -> T:
    """Awaits ``operation`` to its end even if the calling task is cancelled meanwhile.

    The operation is started once. A cancellation received while waiting is
    re-raised only after the operation has finished.
    """
    future = asyncio.ensure_future(operation)
    cancelled: Optional[asyncio.CancelledError] = None
    while not future.done():
        try:
            await asyncio.shield(future)
        except asyncio.CancelledError as e:
            cancelled = e
    if cancelled is not None:
        if not future.cancelled() and future.exception() is not None:
            logger.error("Operation failed after its task was cancelled", exc_info=future.exception())
        raise cancelled
    return future.result()


async def _rollback(conn: AsyncConnection) -> None:
    """Rolls ``conn`` back, logging a failed rollback instead of raising it."""
    try:
        await _run_to_completion(conn.rollback())
    except Exception as e:
        logger.error(f"Error rolling back database transaction: {e}", exc_info=True)


class EngineHandle:
    """Default handle: every statement runs in its own short, committed connection.

    Offers the same ``execute``/``scalar``/``scalars`` calls as the
    ``AsyncConnection`` handed out inside a transaction, so code written against
    the resolver does not care which one it received.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def execute(self, statement: Any, parameters: Any = None) -> Result:
        async with self.engine.begin() as conn:
            return await conn.execute(statement, parameters)

    async def scalar(self, statement: Any, parameters: Any = None) -> Any:
        async with self.engine.begin() as conn:
            return await conn.scalar(statement, parameters)

    async def scalars(self, statement: Any, parameters: Any = None) -> ScalarResult:
        async with self.engine.begin() as conn:
            return await conn.scalars(statement, parameters)

    def __repr__(self) -> str:
        return f"EngineHandle({_mask_password(str(self.engine.url))})"


class SQLAlchemyStore:
    """TransactionalStore backed by a SQLAlchemy async engine.

    The transactional handle is the ``AsyncConnection`` holding the open
    transaction; the default handle is an :class:`EngineHandle`.
    """

    def __init__(self, settings: Settings, db_url: Optional[str] = None) -> None:
        self.settings = settings
        self._db_url = db_url
        self._engine: Optional[AsyncEngine] = None
        self._default_handle: Optional[EngineHandle] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ResourceNotReadyError("Database engine has not been created; call connect() first.")
        return self._engine

    @property
    def default_handle(self) -> EngineHandle:
        if self._default_handle is None:
            raise ResourceNotReadyError("Database engine has not been created; call connect() first.")
        return self._default_handle

    def _engine_kwargs(self, db_url: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = dict(echo=self.settings.get_db_echo(), pool_pre_ping=True)
        if db_url.startswith("sqlite"):
            # SQLite engines use their own pool classes and reject pool sizing
            return kwargs

        # Get and validate pool sizes
        pool_min_size = self.settings.get_main_db_pool_min_size()
        pool_max_size = self.settings.get_main_db_pool_max_size()
        if pool_max_size < pool_min_size:
            raise DBConfigurationError(
                f"MAIN_DB_POOL_MAX_SIZE ({pool_max_size}) must not be smaller than MAIN_DB_POOL_MIN_SIZE ({pool_min_size})"
            )
        kwargs.update(pool_size=pool_min_size, max_overflow=pool_max_size - pool_min_size)
        return kwargs

    async def connect(self) -> None:
        """Creates the async engine for the application DB.

        Raises:
            DBConfigurationError: If the database configuration is invalid.
            DBConnectionError: If the database connection fails.
        """
        if self._engine:
            logger.debug("Database engine already initialized.")
            return

        logger.info("Attempting to create database engine...")

        db_url = self._db_url or _get_db_url(self.settings)
        engine_kwargs = self._engine_kwargs(db_url)

        engine: Optional[AsyncEngine] = None
        try:
            engine = create_async_engine(db_url, **engine_kwargs)
            # Fail here rather than on the first resolver read
            async with engine.connect():
                pass
        except Exception as e:
            if engine is not None:
                await engine.dispose()
            masked_url = _mask_password(db_url)
            raise DBConnectionError(f"Failed to create database engine using URL ({masked_url}): {e}") from e

        self._engine = engine
        self._default_handle = EngineHandle(engine)
        logger.info("Database engine created successfully.")

    async def disconnect(self) -> None:
        """Closes the database engine."""
        if self._engine:
            try:
                await self._engine.dispose()
                logger.info("Database engine closed successfully.")
            except Exception as e:
                logger.error(f"Error closing database engine: {e}", exc_info=True)
            finally:
                self._engine = None
                self._default_handle = None
        else:
            logger.info("Database engine was already None or not initialized during shutdown.")

    async def begin_interactive_transaction(self, fn: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        """Awaits ``fn(connection)`` inside one transaction.

        Raises:
            DBTransactionBeginError: If no connection or transaction could be opened.
            DBTransactionError: If the commit fails.
            Exception: Anything raised by ``fn``, unchanged, after rolling back.
        """
        try:
            conn = await self.engine.connect()
        except ResourceNotReadyError:
            raise
        except Exception as e:
            raise DBTransactionBeginError(f"Could not acquire a database connection: {e}") from e

        try:
            try:
                await conn.begin()
            except Exception as e:
                raise DBTransactionBeginError(f"Could not begin a database transaction: {e}") from e

            try:
                result = await fn(conn)
            except BaseException:
                # Also reached on cancellation
                await _rollback(conn)
                raise

            try:
                await conn.commit()
            except SQLAlchemyError as sqla_err:
                await _rollback(conn)
                raise DBTransactionError(f"Database transaction failed to commit: {sqla_err}") from sqla_err
            return result
        finally:
            try:
                await _run_to_completion(conn.close())
            except Exception as e:
                logger.error(f"Error closing database connection: {e}", exc_info=True)
