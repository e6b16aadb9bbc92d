"""
Two-candle engulfing reversal detector.
Works on the two most recently closed bars only (never the forming bar).
"""

from __future__ import annotations
import logging
from typing import Optional, Sequence

from engulfing_bot.core.types import Bar, InstrumentSpec, PatternResult, Signal, SignalSide
from engulfing_bot.strategies.base import BaseStrategy
from engulfing_bot.utils.exchange_filters import price_to_points

logger = logging.getLogger("engulfing_bot.strategies.engulfing")


def body_points(bar: Bar, point: float) -> float:
    """|close - open| in points."""
    return price_to_points(abs(bar.close - bar.open), point)


def classify(
    bar1: Bar,
    bar2: Bar,
    min_body_points: float,
    point: float,
    enable_bullish: bool = True,
    enable_bearish: bool = True,
) -> PatternResult:
    """
    Classify bar1 (last closed) against bar2 (the one before it).

    Bullish: bar2 bearish, bar1 bullish, bar1 body contains bar2 body on both edges.
    Bearish: the mirror image. Either body under min_body_points -> NONE.
    Bullish is checked first.
    """
    if body_points(bar1, point) < min_body_points or body_points(bar2, point) < min_body_points:
        return PatternResult.NONE

    if (
        enable_bullish
        and bar2.is_bearish
        and bar1.is_bullish
        and bar1.open < bar2.close
        and bar1.close > bar2.open
    ):
        return PatternResult.BULLISH_ENGULFING

    if (
        enable_bearish
        and bar2.is_bullish
        and bar1.is_bearish
        and bar1.open > bar2.close
        and bar1.close < bar2.open
    ):
        return PatternResult.BEARISH_ENGULFING

    return PatternResult.NONE


class EngulfingStrategy(BaseStrategy):
    """Bullish engulfing -> BUY, bearish engulfing -> SELL."""

    bars_required = 2

    def __init__(
        self,
        min_body_points: float = 10,
        enable_bullish: bool = True,
        enable_bearish: bool = True,
    ):
        self.min_body_points = min_body_points
        self.enable_bullish = enable_bullish
        self.enable_bearish = enable_bearish

    def get_signal(self, bars: Sequence[Bar], instrument: InstrumentSpec) -> Optional[Signal]:
        if len(bars) < self.bars_required:
            return None
        bar1, bar2 = bars[0], bars[1]
        pattern = classify(
            bar1,
            bar2,
            self.min_body_points,
            instrument.point,
            self.enable_bullish,
            self.enable_bearish,
        )
        if pattern is PatternResult.NONE:
            return None
        side = SignalSide.LONG if pattern is PatternResult.BULLISH_ENGULFING else SignalSide.SHORT
        logger.info("%s detected on bar %s", pattern.value, bar1.time)
        return Signal(
            side=side,
            bar_time=bar1.time,
            pattern=pattern,
            metadata={
                "body1_points": body_points(bar1, instrument.point),
                "body2_points": body_points(bar2, instrument.point),
            },
        )
