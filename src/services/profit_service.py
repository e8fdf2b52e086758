# src/services/profit_service.py
"""
Profit aggregates and the Global singleton row.

Aggregates are NULL-safe (no rows means 0.0) and percentages come back from
the store as fractions, so they are scaled by 100 here.
"""

import time

from src.data import Global, Session
from src.database.invoker import CallContext
from src.database.mapper import decode_global, decode_profit, decode_thread_profit


def _global_args(session: Session) -> tuple:
    return (
        session.global_data.profit,
        session.global_data.profit_net,
        session.global_data.profit_pct,
        int(time.time()),
    )


def save_global(session: Session) -> None:
    """Write the initial Global row, stamped with the current unix time."""
    session.db.call(
        "SaveGlobal",
        _global_args(session),
        context=CallContext("save_global", session=session),
    )


def update_global(session: Session) -> None:
    session.db.call(
        "UpdateGlobal",
        _global_args(session),
        context=CallContext("update_global", session=session),
    )


def get_global(session: Session) -> Global:
    return session.db.fetch_one(
        "GetGlobal",
        (),
        decode_global,
        default=Global(),
        context=CallContext("get_global", session=session),
    )


def get_profit(session: Session) -> tuple[float, float, float]:
    """Total (profit, net profit, average percentage) across every thread."""
    return session.db.fetch_one(
        "GetProfit",
        (),
        decode_profit,
        default=(0.0, 0.0, 0.0),
        context=CallContext("get_profit", session=session),
    )


def get_profit_by_thread_id(session: Session) -> tuple[float, float]:
    """Total fiat profit and average percentage for the session's thread."""
    return session.db.fetch_one(
        "GetProfitByThreadID",
        (session.thread_id,),
        decode_thread_profit,
        default=(0.0, 0.0),
        context=CallContext("get_profit_by_thread_id", session=session),
    )
