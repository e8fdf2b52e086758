# src/services/order_service.py
"""
Order persistence and order lookups.

Each function is one stored procedure call. Lookups that match nothing
return ``Order()`` with zero values rather than raising.
"""

import logging

from src.data import Market, Order, Session
from src.database.invoker import CallContext
from src.database.mapper import (
    decode_order_by_id,
    decode_order_listing,
    decode_order_transaction,
    decode_pending_order,
    decode_str,
)

logger = logging.getLogger(__name__)


def save_order(session: Session, order: Order, order_id_source: int, order_price: float) -> None:
    """
    Persist a new exchange order for the session's thread.

    ``order_id_source`` links a sell to the buy it closes; ``order_price`` is
    the price recorded for the order, which for market orders differs from
    ``order.price``.
    """
    session.db.call(
        "SaveOrder",
        (
            order.client_order_id,
            order.cumulative_quote_quantity,
            order.executed_quantity,
            order.order_id,
            order_id_source,
            order_price,
            order.side,
            order.status,
            order.symbol,
            order.transact_time,
            session.thread_id,
            session.thread_id_session,
        ),
        context=CallContext(
            "save_order",
            session=session,
            order=Order(order_id=order.order_id, price=order_price),
        ),
    )


def update_order(
    session: Session,
    order_id: int,
    cumulative_quote_quantity: float,
    executed_quantity: float,
    price: float,
    status: str,
) -> None:
    session.db.call(
        "UpdateOrder",
        (order_id, cumulative_quote_quantity, executed_quantity, price, status),
        context=CallContext("update_order", session=session, order=Order(order_id=order_id, price=price)),
    )


def get_order_symbol(session: Session) -> str:
    return session.db.fetch_one(
        "GetOrderSymbol",
        (session.thread_id,),
        decode_str,
        default="",
        context=CallContext("get_order_symbol", session=session),
    )


def get_order_transaction_pending(session: Session) -> Order:
    """One order of the thread still waiting to be FILLED (order_id and symbol only)."""
    return session.db.fetch_one(
        "GetOrderTransactionPending",
        (session.thread_id,),
        decode_pending_order,
        default=Order(),
        context=CallContext("get_order_transaction_pending", session=session),
    )


def get_thread_transaction_by_price(session: Session, market: Market) -> Order:
    """Lowest priced open transaction of the thread relative to ``market.price``."""
    return session.db.fetch_one(
        "GetThreadTransactionByPrice",
        (session.thread_id, market.price),
        decode_order_transaction,
        default=Order(),
        context=CallContext("get_thread_transaction_by_price", session=session, market=market),
    )


def get_thread_transaction_by_price_higher(session: Session, market: Market) -> Order:
    """Highest priced open transaction above ``market.price``; drives stop-loss sells."""
    return session.db.fetch_one(
        "GetThreadTransactionByPriceHigher",
        (session.thread_id, market.price),
        decode_order_transaction,
        default=Order(),
        context=CallContext(
            "get_thread_transaction_by_price_higher", session=session, order=None, market=market
        ),
    )


def get_thread_last_transaction(session: Session) -> Order:
    """Last BUY transaction of the thread."""
    return session.db.fetch_one(
        "GetThreadLastTransaction",
        (session.thread_id,),
        decode_order_transaction,
        default=Order(),
        context=CallContext("get_thread_last_transaction", session=session),
    )


def get_order_by_order_id(session: Session) -> Order:
    """Look up ``session.force_sell_order_id`` within the session's thread."""
    return session.db.fetch_one(
        "GetOrderByOrderID",
        (session.force_sell_order_id, session.thread_id),
        decode_order_by_id,
        default=Order(),
        context=CallContext(
            "get_order_by_order_id",
            session=session,
            order=Order(order_id=session.force_sell_order_id),
        ),
    )


def get_thread_transaction_by_thread_id(session: Session) -> list[Order]:
    """
    Every open transaction of the thread, in store order.

    Quantities arrive as text: cumulative quote quantity is rounded to 2
    places and price to 3. A row that cannot be parsed raises ScanError whose
    ``partial`` still holds the rows that could.
    """
    orders = session.db.fetch_all(
        "GetThreadTransactionByThreadID",
        (session.thread_id,),
        decode_order_listing,
        context=CallContext("get_thread_transaction_by_thread_id", session=session),
    )
    logger.debug(f"{session.thread_id}: {len(orders)} open transactions")
    return orders
