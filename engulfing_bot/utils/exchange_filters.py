"""Lot size, price filter and point helpers from exchange info."""

from __future__ import annotations
import math
from decimal import Decimal
from typing import Optional


def parse_symbol_filters(symbol_info: Optional[dict]) -> tuple[float, float, float]:
    """
    Extract min_qty, step_size (lot_step), tick_size from symbol filters.
    Returns (min_qty, lot_step, price_tick). Uses defaults if symbol_info is None.
    """
    min_qty = 0.001
    lot_step = 0.001
    price_tick = 0.01
    if not symbol_info:
        return min_qty, lot_step, price_tick
    for f in symbol_info.get("filters", []):
        if f.get("filterType") == "LOT_SIZE":
            min_qty = float(f.get("minQty", min_qty))
            lot_step = float(f.get("stepSize", lot_step))
        if f.get("filterType") == "PRICE_FILTER":
            price_tick = float(f.get("tickSize", price_tick))
    return min_qty, lot_step, price_tick


def round_quantity(qty: float, min_qty: float, step_size: float) -> float:
    """Round down to step size; return 0 if below min_qty."""
    if qty <= 0:
        return 0.0
    rounded = math.floor(round(qty / step_size, 9)) * step_size
    if rounded < min_qty:
        return 0.0
    return round(rounded, 8)


def round_price(price: float, tick_size: float) -> float:
    """Round price to exchange tick."""
    return round(round(price / tick_size) * tick_size, 8)


def price_digits(tick_size: float) -> int:
    """Decimal places implied by a tick size (0.0001 -> 4, 0.5 -> 1, 1 -> 0)."""
    exponent = Decimal(repr(tick_size)).normalize().as_tuple().exponent
    return max(0, -exponent)


def price_to_points(price_diff: float, point: float) -> float:
    """Express a price difference in points, stable against float noise."""
    return round(price_diff / point, 6)


def points_to_price(points: float, point: float) -> float:
    """Express a distance in points as a price difference."""
    return points * point
