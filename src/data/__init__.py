"""
Trading domain records.

Sessions, orders and the global profit aggregate as they travel between the
trading loop and the stored procedures.
"""

from src.data.base import Record
from src.data.order_data import Order
from src.data.trading_data import Config, Global, Market, Session

__all__ = ["Record", "Order", "Config", "Global", "Market", "Session"]
