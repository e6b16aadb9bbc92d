"""Utils: Telegram, timeframes, exchange filters."""

from engulfing_bot.utils.telegram import make_notifier, send_telegram
from engulfing_bot.utils.timeframes import timeframe_minutes
from engulfing_bot.utils.exchange_filters import (
    parse_symbol_filters,
    price_digits,
    price_to_points,
    points_to_price,
    round_price,
    round_quantity,
)

__all__ = [
    "send_telegram",
    "make_notifier",
    "timeframe_minutes",
    "parse_symbol_filters",
    "price_digits",
    "price_to_points",
    "points_to_price",
    "round_price",
    "round_quantity",
]
