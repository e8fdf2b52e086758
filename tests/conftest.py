from __future__ import annotations

import re
from typing import Any, NamedTuple

import pytest
from sqlalchemy.exc import OperationalError

from src.data import Session
from src.database.invoker import ProcedureInvoker

_CALL = re.compile(r"^CALL (\w+)\.(\w+)\((.*)\)$")


class Call(NamedTuple):
    schema: str
    procedure: str
    args: tuple


class FakeResult:
    def __init__(self, rows: list[tuple] | None) -> None:
        self.returns_rows = rows is not None
        self._rows = list(rows or [])
        self.rows_read = 0
        self.close_count = 0

    def __iter__(self):
        for row in self._rows:
            self.rows_read += 1
            yield row

    def close(self) -> None:
        self.close_count += 1


class FakeConnection:
    def __init__(self, engine: FakeEngine) -> None:
        self.engine = engine

    def __enter__(self) -> FakeConnection:
        self.engine.open_connections += 1
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        self.engine.open_connections -= 1
        self.engine.returned_connections += 1
        return False

    def execute(self, statement, params: dict[str, Any]) -> FakeResult:
        match = _CALL.match(str(statement))
        assert match, f"unexpected statement: {statement}"
        schema, procedure, placeholders = match.groups()
        names = re.findall(r":(arg\d+)", placeholders)
        args = tuple(params[name] for name in names)
        self.engine.calls.append(Call(schema, procedure, args))

        handler = self.engine.handlers.get(procedure)
        if isinstance(handler, Exception):
            raise handler
        rows = handler(*args) if callable(handler) else handler
        result = FakeResult(rows)
        self.engine.results.append(result)
        return result


class FakeEngine:
    """
    Stand-in for a pooled SQLAlchemy engine.

    ``handlers`` maps a procedure name to rows, a callable taking the bound
    arguments and returning rows (None for no result set), or an exception to
    raise from execute.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.calls: list[Call] = []
        self.results: list[FakeResult] = []
        self.open_connections = 0
        self.returned_connections = 0

    def connect(self) -> FakeConnection:
        return FakeConnection(self)


def make_driver_error(message: str = "Lost connection to MySQL server") -> OperationalError:
    return OperationalError("CALL", {}, Exception(message))


class UnreachableEngine(FakeEngine):
    def connect(self) -> FakeConnection:
        raise make_driver_error("Can't connect to MySQL server on 'db'")


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def invoker(engine: FakeEngine) -> ProcedureInvoker:
    return ProcedureInvoker(engine)


@pytest.fixture
def session(invoker: ProcedureInvoker) -> Session:
    return Session(
        thread_id="T1",
        thread_id_session="S1",
        symbol="BTCUSDT",
        symbol_fiat="USDT",
        symbol_fiat_funds=1000.0,
        diff_total=12.5,
        status=False,
        db=invoker,
    )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in (
        "DB_TCP_HOST",
        "DB_PORT",
        "DB_USER",
        "DB_PASS",
        "DB_NAME",
        "INSTANCE_CONNECTION_NAME",
        "DB_SOCKET_DIR",
        "DB_SCHEMA",
    ):
        monkeypatch.delenv(name, raising=False)
    # keep a stray .env in the working directory out of the settings
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def driver_error():
    """Factory for driver exceptions as SQLAlchemy raises them."""
    return make_driver_error


@pytest.fixture
def unreachable_engine() -> UnreachableEngine:
    return UnreachableEngine()
