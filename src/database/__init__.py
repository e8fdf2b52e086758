"""
Database connection pool and stored procedure invocation.

This module provides the foundation for all store operations.
"""

from src.database.connection import DatabaseManager, create_pool_engine, init_pool
from src.database.invoker import CallContext, ProcedureInvoker
from src.database.liveness import LivenessProbe, LockFileProbe, first_adoptable
from src.database.monitoring import DatabaseMetrics

__all__ = [
    "CallContext",
    "DatabaseManager",
    "DatabaseMetrics",
    "LivenessProbe",
    "LockFileProbe",
    "ProcedureInvoker",
    "create_pool_engine",
    "first_adoptable",
    "init_pool",
]
