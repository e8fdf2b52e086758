# src/database/connection.py
"""
Connection pool management for the stored procedure store.

One pool per process, shared by every trading loop. Its sizing is fixed:
at most 5 idle and 7 open connections, each recycled after 1800 seconds.
Callers beyond the open-connection ceiling block until a connection is
returned; there is no checkout timeout.
"""

import logging
import sys
import time
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool

from src.config.logging import LogEntry
from src.config.settings import DatabaseConfig, load_database_config, settings
from src.core.exceptions import ConfigurationError, DatabaseConnectionError
from src.data import Order
from src.database.invoker import ProcedureInvoker
from src.database.monitoring import DatabaseMetrics

logger = logging.getLogger(__name__)

MAX_IDLE_CONNECTIONS = 5
MAX_OPEN_CONNECTIONS = 7
CONNECTION_MAX_LIFETIME = 1800  # seconds


def create_pool_engine(url: str | URL, **engine_kwargs: Any) -> Engine:
    """
    Create an engine with the fixed pool policy.

    Idle connections above MAX_IDLE_CONNECTIONS are closed on return, and the
    overflow allowance caps open connections at MAX_OPEN_CONNECTIONS.
    """
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=MAX_IDLE_CONNECTIONS,
        max_overflow=MAX_OPEN_CONNECTIONS - MAX_IDLE_CONNECTIONS,
        pool_recycle=CONNECTION_MAX_LIFETIME,
        pool_timeout=None,  # block at capacity instead of raising
        pool_pre_ping=True,  # Validates connections before use
        isolation_level="AUTOCOMMIT",
        **engine_kwargs,
    )


class DatabaseManager:
    """
    Owner of the process-wide pool.

    Build it once at startup and hand ``invoker`` to every Session. Tests can
    pass a ready ``engine`` to skip pool construction.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        engine: Engine | None = None,
        metrics: DatabaseMetrics | None = None,
    ):
        self.config = config
        self.metrics = metrics or DatabaseMetrics(slow_call_threshold=settings.slow_call_threshold)
        self._engine = engine
        self._invoker: ProcedureInvoker | None = None
        self._last_health_check: float = 0
        self._connection_failures: int = 0
        self._initialized: bool = engine is not None

    def initialize(self) -> None:
        """
        Create the engine and check that the store answers.

        Required values are checked before any engine exists, raising
        ConfigurationError. There is no retry: a failure to connect raises
        DatabaseConnectionError and the caller is expected to stop the process.
        """
        if self._initialized:
            return

        missing = self.config.missing_values()
        if missing:
            raise ConfigurationError(missing)

        try:
            self._engine = create_pool_engine(self.config.url)
            logger.info(f"Database engine created: {self.config.masked_dsn}")
            self._validate_connection()
        except SQLAlchemyError as e:
            self._connection_failures += 1
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
            raise DatabaseConnectionError(f"cannot open pool {self.config.masked_dsn}: {e}") from e

        self._initialized = True
        logger.info("✅ Database pool initialized")

    def _validate_connection(self) -> None:
        """Validate that the database connection works."""
        with self.engine.connect() as conn:
            test_value = conn.execute(text("SELECT 1")).scalar()
            if test_value != 1:
                raise DatabaseConnectionError("Database connectivity test failed")
        self._last_health_check = time.time()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database engine is not initialized")
        return self._engine

    @property
    def invoker(self) -> ProcedureInvoker:
        """The shared procedure invoker; one per pool."""
        if self._invoker is None:
            self._invoker = ProcedureInvoker(
                self.engine, schema=self.config.schema_name, metrics=self.metrics
            )
        return self._invoker

    def test_connection(self) -> bool:
        """Run a trivial query; never raises."""
        try:
            self._validate_connection()
            return True
        except (SQLAlchemyError, DatabaseConnectionError, RuntimeError) as e:
            self._connection_failures += 1
            logger.warning(f"Health check failed: {e}")
            return False

    def get_pool_status(self) -> dict[str, Any]:
        """Get connection pool status for monitoring."""
        if self._engine is None:
            return {"status": "not_initialized"}

        pool = self._engine.pool
        status: dict[str, Any] = {
            "pool_class": type(pool).__name__,
            "last_health_check": self._last_health_check,
            "connection_failures": self._connection_failures,
            "calls": self.metrics.get_performance_summary(),
        }
        if isinstance(pool, QueuePool):
            status.update(
                size=pool.size(),
                checked_in=pool.checkedin(),
                checked_out=pool.checkedout(),
                overflow=pool.overflow(),
            )
        return status

    def close(self) -> None:
        """Dispose of every pooled connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._invoker = None
            self._initialized = False
        logger.info("Database manager shut down cleanly")


def init_pool(config: DatabaseConfig | None = None) -> DatabaseManager:
    """
    Build the process-wide pool or stop the process.

    Missing configuration and an unreachable store are both fatal: the error
    is logged and the process exits right away with status 1.
    """
    try:
        manager = DatabaseManager(config or load_database_config())
        manager.initialize()
    except (ConfigurationError, DatabaseConnectionError) as e:
        LogEntry(message=f"init_pool - {e}", order=Order(), level=logging.CRITICAL).do()
        sys.exit(1)
    return manager
