# src/database/invoker.py
"""
Uniform stored procedure invocation.

Every operation in src/services goes through ProcedureInvoker: bind the
arguments positionally, CALL the procedure, consume the returned rows with
one of the strategies below, and close the row cursor before returning.

Strategies:
    call       no rows consumed
    fetch_one  one scalar tuple; the last row wins, ``default`` if none
    fetch_all  every row, in the order the store returns them
    consume    a caller-supplied consumer over the row iterator
"""

import logging
import re
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import Engine, text
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import SQLAlchemyError

from src.config.logging import LogEntry
from src.config.settings import DEFAULT_SCHEMA
from src.core.exceptions import QueryError, ScanError
from src.data import Config, Market, Order, Session
from src.database.monitoring import CallProfiler, DatabaseMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DECODE_ERRORS = (TypeError, ValueError, ArithmeticError)


@dataclass
class CallContext:
    """
    What was in scope for one operation, used only for failure reporting.

    ``operation`` is the public operation name (for example ``save_order``),
    which is not always the procedure name.
    """

    operation: str
    session: Session | None = None
    order: Order | None = field(default_factory=Order)
    config: Config | None = None
    market: Market | None = None

    def report(self, error: BaseException) -> None:
        LogEntry(
            message=f"{self.operation} - {error}",
            config=self.config,
            market=self.market,
            session=self.session,
            order=self.order,
        ).do()


class ProcedureInvoker:
    """
    Calls stored procedures in one schema over a shared pooled engine.

    The engine is injected and never owned: closing it is the job of
    DatabaseManager. Use a different ``schema`` to route calls to an
    isolated copy of the procedures.
    """

    def __init__(
        self,
        engine: Engine,
        schema: str = DEFAULT_SCHEMA,
        metrics: DatabaseMetrics | None = None,
    ):
        if not _IDENTIFIER.match(schema):
            raise ValueError(f"invalid schema name: {schema!r}")
        self._engine = engine
        self.schema = schema
        self.metrics = metrics or DatabaseMetrics()

    def statement(self, procedure: str, arg_count: int):
        if not _IDENTIFIER.match(procedure):
            raise ValueError(f"invalid procedure name: {procedure!r}")
        placeholders = ", ".join(f":arg{i}" for i in range(arg_count))
        return text(f"CALL {self.schema}.{procedure}({placeholders})")

    def _connect(self, procedure: str, context: CallContext) -> Connection:
        try:
            return self._engine.connect()
        except SQLAlchemyError as e:
            context.report(e)
            raise QueryError(procedure, e) from e

    def _execute(
        self,
        conn: Connection,
        procedure: str,
        args: Sequence[Any],
        context: CallContext,
    ) -> CursorResult:
        params = {f"arg{i}": value for i, value in enumerate(args)}
        try:
            return conn.execute(self.statement(procedure, len(args)), params)
        except SQLAlchemyError as e:
            context.report(e)
            raise QueryError(procedure, e) from e

    def consume(
        self,
        procedure: str,
        args: Sequence[Any],
        consumer: Callable[[Iterator[Any]], T],
        *,
        context: CallContext,
    ) -> T:
        """
        Run ``consumer`` over the returned rows.

        The consumer may stop early; rows it does not read are discarded when
        the cursor is closed. Decode errors raised by the consumer surface as
        ScanError.
        """
        logger.debug(f"CALL {self.schema}.{procedure} with {len(args)} args")
        with CallProfiler(self.metrics, procedure) as profiler:
            with self._connect(procedure, context) as conn:
                result = self._execute(conn, procedure, args, context)
                try:
                    return consumer(self._counted(result, profiler))
                except _DECODE_ERRORS as e:
                    raise ScanError(procedure, e) from e
                except SQLAlchemyError as e:
                    context.report(e)
                    raise QueryError(procedure, e) from e
                finally:
                    result.close()

    @staticmethod
    def _counted(result: CursorResult, profiler: CallProfiler) -> Iterator[Any]:
        if not result.returns_rows:
            return
        for row in result:
            profiler.add_row()
            yield row

    def call(self, procedure: str, args: Sequence[Any] = (), *, context: CallContext) -> None:
        self.consume(procedure, args, lambda rows: None, context=context)

    def fetch_one(
        self,
        procedure: str,
        args: Sequence[Any],
        decode: Callable[[Any], T],
        *,
        default: T,
        context: CallContext,
    ) -> T:
        def consumer(rows: Iterable[Any]) -> T:
            record = default
            for row in rows:
                record = decode(row)
            return record

        return self.consume(procedure, args, consumer, context=context)

    def fetch_all(
        self,
        procedure: str,
        args: Sequence[Any],
        decode: Callable[[Any], T],
        *,
        context: CallContext,
    ) -> list[T]:
        """
        Decode every row in store order.

        A row that fails to decode is skipped and decoding carries on; the
        decoded rows are then raised in ScanError.partial with the last decode
        error as the cause.
        """

        def consumer(rows: Iterable[Any]) -> list[T]:
            records: list[T] = []
            last_error: BaseException | None = None
            for row in rows:
                try:
                    records.append(decode(row))
                except _DECODE_ERRORS as e:
                    last_error = e
            if last_error is not None:
                raise ScanError(procedure, last_error, partial=records) from last_error
            return records

        return self.consume(procedure, args, consumer, context=context)
