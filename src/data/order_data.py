# src/data/order_data.py

from dataclasses import dataclass

from src.data.base import Record


@dataclass
class Order(Record):
    """
    Persisted projection of one exchange order.

    Built fresh for every call and never cached. Lookups that match nothing
    return ``Order()`` with every field at its zero value.
    """

    client_order_id: str = ""
    order_id: int = 0
    side: str = ""
    status: str = ""
    symbol: str = ""
    price: float = 0.0
    executed_quantity: float = 0.0
    cumulative_quote_quantity: float = 0.0
    transact_time: int = 0
