import os
from typing import Optional

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)

VALID_SHUTDOWN_POLICIES = ("wait", "cancel")


class Settings:
    """Configuration settings loaded from environment variables."""

    def get_database_url(self) -> Optional[str]:
        """Returns the primary DATABASE_URL, if set."""
        return os.getenv("DATABASE_URL")

    # --- Database settings Getters using os.getenv ---
    def get_postgres_user(self) -> str | None:
        return os.getenv("DB_USER")

    def get_postgres_password(self) -> str | None:
        return os.getenv("DB_PASSWORD")

    def get_postgres_db(self) -> str | None:
        return os.getenv("DB_NAME")

    def get_postgres_host(self) -> str | None:
        return os.getenv("DB_HOST")

    def get_postgres_port(self) -> int | None:
        """Returns the PostgreSQL port as an integer, or None if not set."""
        port_str = os.getenv("DB_PORT")
        if port_str is None:
            return None
        try:
            return int(port_str)
        except ValueError:
            raise ValueError("DB_PORT environment variable must be an integer.")

    # --- DB Pool Size Getters ---
    def get_main_db_pool_min_size(self) -> int:
        """Returns the minimum pool size for the main DB."""
        try:
            return int(os.getenv("MAIN_DB_POOL_MIN_SIZE", "1"))
        except ValueError:
            raise ValueError("MAIN_DB_POOL_MIN_SIZE environment variable must be an integer.")

    def get_main_db_pool_max_size(self) -> int:
        """Returns the maximum pool size for the main DB."""
        try:
            return int(os.getenv("MAIN_DB_POOL_MAX_SIZE", "10"))
        except ValueError:
            raise ValueError("MAIN_DB_POOL_MAX_SIZE environment variable must be an integer.")

    def get_db_echo(self) -> bool:
        """Returns True if SQL statements should be echoed by the engine."""
        return os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    # --- Transaction Settings ---
    def get_shutdown_policy(self) -> str:
        """Returns how in-flight root transactions are handled on shutdown ('wait' or 'cancel')."""
        policy = os.getenv("SHUTDOWN_POLICY", "wait").lower()
        if policy not in VALID_SHUTDOWN_POLICIES:
            raise ValueError(
                f"Invalid SHUTDOWN_POLICY '{policy}'. Valid policies are: {', '.join(VALID_SHUTDOWN_POLICIES)}"
            )
        return policy

    def get_shutdown_timeout(self) -> float:
        """Returns the number of seconds shutdown waits for in-flight transactions."""
        try:
            timeout = float(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30"))
        except ValueError:
            raise ValueError("SHUTDOWN_TIMEOUT_SECONDS environment variable must be a number.")
        if timeout < 0:
            raise ValueError("SHUTDOWN_TIMEOUT_SECONDS environment variable must not be negative.")
        return timeout

    def get_transaction_id_length(self) -> int:
        """Returns the length of generated transaction ids."""
        try:
            length = int(os.getenv("TRANSACTION_ID_LENGTH", "12"))
        except ValueError:
            raise ValueError("TRANSACTION_ID_LENGTH environment variable must be an integer.")
        if not 4 <= length <= 32:
            raise ValueError("TRANSACTION_ID_LENGTH environment variable must be between 4 and 32.")
        return length
