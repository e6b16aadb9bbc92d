"""
Core data types for bars, signals, orders, and positions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from engulfing_bot.utils.exchange_filters import round_price


class SignalSide(str, Enum):
    LONG = "BUY"
    SHORT = "SELL"


class PatternResult(str, Enum):
    NONE = "none"
    BULLISH_ENGULFING = "bullish_engulfing"
    BEARISH_ENGULFING = "bearish_engulfing"


@dataclass(frozen=True)
class Bar:
    """OHLCV candle. Closed bars are never mutated."""
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class InstrumentSpec:
    """Price increment ("point") and precision of the traded symbol."""
    symbol: str
    point: float
    digits: int

    def normalize(self, price: float) -> float:
        return round(round_price(price, self.point), self.digits)


@dataclass
class Signal:
    """Engulfing signal detected on a closed bar. Consumed immediately, not stored."""
    side: SignalSide
    bar_time: datetime
    pattern: PatternResult
    metadata: dict = field(default_factory=dict)


@dataclass
class OrderRequest:
    """Market order with protective levels. 0.0 for stop_loss/take_profit means none."""
    symbol: str
    side: SignalSide
    volume: float
    entry_price: float
    stop_loss: float
    take_profit: float
    owner_tag: str
    comment: str = ""


@dataclass
class Position:
    """Open position as reported by the venue."""
    position_id: str
    symbol: str
    side: SignalSide
    quantity: float
    open_price: float
    stop_loss: float = 0.0
    take_profit: float = 0.0
    owner_tag: Optional[str] = None

    @property
    def has_stop(self) -> bool:
        return self.stop_loss > 0
