# src/data/trading_data.py

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from src.data.base import Record

if TYPE_CHECKING:
    from src.database.invoker import ProcedureInvoker


@dataclass
class Config(Record):
    """Static deployment parameters consumed read-only by the session procedures."""

    exchange_name: str = ""


@dataclass
class Market(Record):
    """Market snapshot; ``price`` is the threshold for price-filtered lookups."""

    symbol: str = ""
    price: float = 0.0


@dataclass
class Global(Record):
    """Process-wide cumulative profit. Singleton row in the store, read and written whole."""

    profit: float = 0.0
    profit_net: float = 0.0
    profit_pct: float = 0.0
    transact_time: int = 0


@dataclass
class Session(Record):
    """
    Identity of one running trading loop.

    ``thread_id`` is unique per live loop and is also the stem of the loop's
    ``<thread_id>.lock`` file. Uniqueness is enforced by the store.

    ``db`` is the process-wide procedure invoker. The session borrows it for
    the process lifetime and never closes it.
    """

    thread_id: str = ""
    thread_id_session: str = ""
    symbol: str = ""
    symbol_fiat: str = ""
    symbol_fiat_funds: float = 0.0
    diff_total: float = 0.0
    status: bool = False
    force_sell_order_id: int = 0
    global_data: Global = field(default_factory=Global)
    db: Optional["ProcedureInvoker"] = field(default=None, repr=False, compare=False, metadata={"log": False})
