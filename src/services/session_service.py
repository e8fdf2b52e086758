# src/services/session_service.py
"""
Session rows: registration of running trading loops and adoption of
sessions left behind by loops that died.
"""

import logging
from collections.abc import Iterable
from typing import Any

from src.config.settings import settings
from src.data import Config, Session
from src.database.invoker import CallContext
from src.database.liveness import LivenessProbe, LockFileProbe, first_adoptable
from src.database.mapper import decode_int, decode_status

logger = logging.getLogger(__name__)


def _session_args(config: Config, session: Session) -> tuple:
    return (
        session.thread_id,
        session.thread_id_session,
        config.exchange_name,
        session.symbol_fiat,
        session.symbol_fiat_funds,
        session.diff_total,
        session.status,
    )


def save_session(config: Config, session: Session) -> None:
    """Register a new session row for the thread."""
    session.db.call(
        "SaveSession",
        _session_args(config, session),
        context=CallContext("save_session", session=session, config=config),
    )


def update_session(config: Config, session: Session) -> None:
    session.db.call(
        "UpdateSession",
        _session_args(config, session),
        context=CallContext("update_session", session=session, config=config),
    )


def delete_session(session: Session) -> None:
    session.db.call(
        "DeleteSession",
        (session.thread_id,),
        context=CallContext("delete_session", session=session),
    )


def get_session_status(session: Session) -> str:
    """
    Return the thread_id of the first session flagged with a system error.

    Rows after the first flagged one are not read. Returns "" when no session
    is flagged, rather than the thread_id of the last row scanned.
    """

    def first_flagged(rows: Iterable[Any]) -> str:
        for row in rows:
            thread_id, status = decode_status(row)
            if status:
                return thread_id
        return ""

    return session.db.consume(
        "GetSessionStatus",
        (),
        first_flagged,
        context=CallContext("get_session_status", session=session),
    )


def get_thread_transaction_distinct(
    session: Session, probe: LivenessProbe | None = None
) -> tuple[str, str]:
    """
    Find a session left behind by a dead trading loop.

    Returns the (thread_id, thread_id_session) of the first recorded session
    whose thread has no live owner according to ``probe`` (by default a lock
    file in ``settings.lock_dir``), or ("", "") if every thread is alive.
    """
    probe = probe or LockFileProbe(settings.lock_dir)
    return session.db.consume(
        "GetThreadTransactionDistinct",
        (),
        lambda rows: first_adoptable(rows, probe),
        context=CallContext("get_thread_transaction_distinct", session=session),
    )


def get_thread_count(session: Session) -> int:
    """Number of running threads."""
    return session.db.fetch_one(
        "GetThreadCount",
        (),
        decode_int,
        default=0,
        context=CallContext("get_thread_count", session=session),
    )
