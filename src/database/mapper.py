# src/database/mapper.py
"""
Decoding of raw procedure rows into caller-visible values.

Rules applied at the boundary:
- NULL-capable aggregates (profit totals, percentages, dollar amounts)
  decode to 0.0 instead of None.
- Numbers the store returns as text are parsed, then rounded:
  cumulative quote quantity to 2 places, price to 3 places.
  Executed quantity is not rounded.
- Percentages arrive as fractions in [0, 1] and are scaled by 100.

Arithmetic goes through Decimal so that 0.0532 scales to exactly 5.32.
Rounding is half-up on the decimal value, so ties round away from zero
("1.005" -> 1.01, 2.675 -> 2.68) where rounding the binary float would give
1.0 and 2.67.
Decoders raise TypeError / ValueError / ArithmeticError on malformed rows;
the invoker turns those into ScanError.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from src.data import Global, Order

CUM_QUOTE_QTY_PLACES = 2
PRICE_PLACES = 3
AMOUNT_PLACES = 2


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (bytes, bytearray)):
        value = value.decode()
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"expected a number, got {type(value).__name__}")


def null_safe_float(value: Any) -> float:
    """NULL becomes 0.0; anything numeric becomes a float."""
    if value is None:
        return 0.0
    return float(_to_decimal(value))


def text_to_float(value: Any) -> float:
    """Parse a textually encoded number. NULL is a decode error here."""
    if value is None:
        raise TypeError("expected a numeric string, got NULL")
    return float(_to_decimal(value))


def round_half_up(value: Any, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(_to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def fraction_to_percentage(value: Any) -> float:
    if value is None:
        return 0.0
    return float(_to_decimal(value) * 100)


def to_int(value: Any) -> int:
    if value is None:
        return 0
    return int(_to_decimal(value))


def to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return value.decode()
    return str(value)


def to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (bytes, bytearray)):
        # MySQL BIT(1) comes back as b"\x00" / b"\x01"
        return any(value)
    return bool(to_int(value))


def _unpack(row: Sequence[Any], width: int) -> tuple:
    values = tuple(row)
    if len(values) != width:
        raise ValueError(f"expected {width} columns, got {len(values)}")
    return values


def decode_scalar(row: Sequence[Any]) -> Any:
    (value,) = _unpack(row, 1)
    return value


def decode_str(row: Sequence[Any]) -> str:
    return to_str(decode_scalar(row))


def decode_int(row: Sequence[Any]) -> int:
    return to_int(decode_scalar(row))


def decode_float(row: Sequence[Any]) -> float:
    return null_safe_float(decode_scalar(row))


def decode_pair(row: Sequence[Any]) -> tuple[str, str]:
    first, second = _unpack(row, 2)
    return to_str(first), to_str(second)


def decode_status(row: Sequence[Any]) -> tuple[str, bool]:
    thread_id, status = _unpack(row, 2)
    return to_str(thread_id), to_bool(status)


def decode_order_transaction(row: Sequence[Any]) -> Order:
    """(cumQuoteQty, orderID, price, execQty, transactTime)"""
    cum_quote_qty, order_id, price, exec_qty, transact_time = _unpack(row, 5)
    return Order(
        order_id=to_int(order_id),
        price=null_safe_float(price),
        executed_quantity=null_safe_float(exec_qty),
        cumulative_quote_quantity=null_safe_float(cum_quote_qty),
        transact_time=to_int(transact_time),
    )


def decode_order_by_id(row: Sequence[Any]) -> Order:
    """(orderID, price, execQty, cumQuoteQty, transactTime)"""
    order_id, price, exec_qty, cum_quote_qty, transact_time = _unpack(row, 5)
    return Order(
        order_id=to_int(order_id),
        price=null_safe_float(price),
        executed_quantity=null_safe_float(exec_qty),
        cumulative_quote_quantity=null_safe_float(cum_quote_qty),
        transact_time=to_int(transact_time),
    )


def decode_pending_order(row: Sequence[Any]) -> Order:
    order_id, symbol = _unpack(row, 2)
    return Order(order_id=to_int(order_id), symbol=to_str(symbol))


def decode_order_listing(row: Sequence[Any]) -> Order:
    """(orderID, cumQuoteQty-text, price-text, execQty-text) from bulk listings."""
    order_id, cum_quote_qty, price, exec_qty = _unpack(row, 4)
    return Order(
        order_id=to_int(order_id),
        executed_quantity=text_to_float(exec_qty),
        cumulative_quote_quantity=round_half_up(text_to_float(cum_quote_qty), CUM_QUOTE_QTY_PLACES),
        price=round_half_up(text_to_float(price), PRICE_PLACES),
    )


def decode_profit(row: Sequence[Any]) -> tuple[float, float, float]:
    """(profit, profitNet, fraction) -> (profit, profitNet, percentage)"""
    profit, profit_net, fraction = _unpack(row, 3)
    return null_safe_float(profit), null_safe_float(profit_net), fraction_to_percentage(fraction)


def decode_thread_profit(row: Sequence[Any]) -> tuple[float, float]:
    """(fiat, fraction) -> (fiat, percentage)"""
    fiat, fraction = _unpack(row, 2)
    return null_safe_float(fiat), fraction_to_percentage(fraction)


def decode_global(row: Sequence[Any]) -> Global:
    profit, profit_net, profit_pct, transact_time = _unpack(row, 4)
    return Global(
        profit=null_safe_float(profit),
        profit_net=null_safe_float(profit_net),
        profit_pct=null_safe_float(profit_pct),
        transact_time=to_int(transact_time),
    )


def decode_amount(row: Sequence[Any]) -> float:
    return round_half_up(null_safe_float(decode_scalar(row)), AMOUNT_PLACES)
