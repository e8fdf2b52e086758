# src/services/transaction_service.py
"""
Thread transactions: the open buy positions each trading loop is holding.
"""

from src.data import Order, Session
from src.database.invoker import CallContext
from src.database.mapper import decode_amount, decode_float, decode_int, decode_pair, decode_str

# GetOrderTransactionCount looks back this many minutes
ORDER_TRANSACTION_WINDOW_MINUTES = -60


def save_thread_transaction(
    session: Session,
    order_id: int,
    cumulative_quote_quantity: float,
    price: float,
    executed_quantity: float,
) -> None:
    session.db.call(
        "SaveThreadTransaction",
        (
            session.thread_id,
            session.thread_id_session,
            order_id,
            cumulative_quote_quantity,
            price,
            executed_quantity,
        ),
        context=CallContext(
            "save_thread_transaction",
            session=session,
            order=Order(order_id=order_id, price=price),
        ),
    )


def delete_thread_transaction_by_order_id(session: Session, order_id: int) -> None:
    session.db.call(
        "DeleteThreadTransactionByOrderID",
        (order_id,),
        context=CallContext(
            "delete_thread_transaction_by_order_id",
            session=session,
            order=Order(order_id=order_id),
        ),
    )


def get_thread_transaction_count(session: Session) -> int:
    return session.db.fetch_one(
        "GetThreadTransactionCount",
        (session.thread_id,),
        decode_int,
        default=0,
        context=CallContext("get_thread_transaction_count", session=session),
    )


def get_last_order_transaction_price(session: Session, side: str) -> float:
    return session.db.fetch_one(
        "GetLastOrderTransactionPrice",
        (session.thread_id, side),
        decode_float,
        default=0.0,
        context=CallContext("get_last_order_transaction_price", session=session),
    )


def get_last_order_transaction_side(session: Session) -> str:
    return session.db.fetch_one(
        "GetLastOrderTransactionSide",
        (session.thread_id,),
        decode_str,
        default="",
        context=CallContext("get_last_order_transaction_side", session=session),
    )


def get_order_transaction_side_last_two(session: Session) -> tuple[str, str]:
    """Sides of the thread's two most recent orders."""
    return session.db.fetch_one(
        "GetOrderTransactionSideLastTwo",
        (session.thread_id,),
        decode_pair,
        default=("", ""),
        context=CallContext("get_order_transaction_side_last_two", session=session),
    )


def get_thread_transaction_upmarket_price_count(session: Session, price: float) -> int:
    """Number of the thread's open transactions priced above ``price``."""
    return session.db.fetch_one(
        "GetThreadTransactiontUpmarketPriceCount",
        (session.thread_id, price),
        decode_int,
        default=0,
        context=CallContext("get_thread_transaction_upmarket_price_count", session=session),
    )


def get_order_transaction_count(session: Session, side: str) -> float:
    """Orders on ``side`` placed by the thread during the last hour."""
    return session.db.fetch_one(
        "GetOrderTransactionCount",
        (session.thread_id, side, ORDER_TRANSACTION_WINDOW_MINUTES),
        decode_float,
        default=0.0,
        context=CallContext("get_order_transaction_count", session=session),
    )


def get_thread_amount(session: Session) -> float:
    """Dollar amount held in open thread transactions, rounded to cents. NULL-safe."""
    return session.db.fetch_one(
        "GetThreadTransactionAmount",
        (),
        decode_amount,
        default=0.0,
        context=CallContext("get_thread_amount", session=session),
    )
