"""Unit tests for strategies.engulfing."""

import pytest
from engulfing_bot.core.types import PatternResult, SignalSide
from engulfing_bot.strategies.engulfing import EngulfingStrategy, body_points, classify

from conftest import make_bar

POINT = 0.0001


def test_body_points():
    assert body_points(make_bar(1.1050, 1.1020), POINT) == pytest.approx(30)
    assert body_points(make_bar(1.1015, 1.1060), POINT) == pytest.approx(45)


def test_bullish_engulfing_scenario():
    bar2 = make_bar(1.1050, 1.1020)
    bar1 = make_bar(1.1015, 1.1060)
    assert classify(bar1, bar2, 10, POINT) == PatternResult.BULLISH_ENGULFING


def test_min_body_filters_scenario():
    bar2 = make_bar(1.1050, 1.1020)
    bar1 = make_bar(1.1015, 1.1060)
    assert classify(bar1, bar2, 50, POINT) == PatternResult.NONE


def test_body_exactly_at_minimum_passes():
    bar2 = make_bar(1.1050, 1.1020)  # 30 points
    bar1 = make_bar(1.1015, 1.1060)
    assert classify(bar1, bar2, 30, POINT) == PatternResult.BULLISH_ENGULFING


def test_bullish_disabled():
    bar2 = make_bar(1.1050, 1.1020)
    bar1 = make_bar(1.1015, 1.1060)
    assert classify(bar1, bar2, 10, POINT, enable_bullish=False) == PatternResult.NONE


def test_bearish_engulfing():
    bar2 = make_bar(1.1020, 1.1050)
    bar1 = make_bar(1.1055, 1.1010)
    assert classify(bar1, bar2, 10, POINT) == PatternResult.BEARISH_ENGULFING
    assert classify(bar1, bar2, 10, POINT, enable_bearish=False) == PatternResult.NONE


def test_bearish_small_body_rejected():
    bar2 = make_bar(1.1020, 1.1025)  # 5 points
    bar1 = make_bar(1.1030, 1.1000)
    assert classify(bar1, bar2, 10, POINT) == PatternResult.NONE


def test_zero_body_never_matches():
    doji = make_bar(1.1030, 1.1030)
    bar1 = make_bar(1.1010, 1.1060)
    assert classify(bar1, doji, 0, POINT) == PatternResult.NONE
    assert classify(doji, make_bar(1.1050, 1.1020), 0, POINT) == PatternResult.NONE


def test_partial_engulf_is_not_a_pattern():
    bar2 = make_bar(1.1050, 1.1020)
    # opens above bar2's close: body does not cover the lower edge
    bar1 = make_bar(1.1025, 1.1060)
    assert classify(bar1, bar2, 10, POINT) == PatternResult.NONE
    # closes below bar2's open: body does not cover the upper edge
    bar1 = make_bar(1.1015, 1.1045)
    assert classify(bar1, bar2, 10, POINT) == PatternResult.NONE


def test_same_direction_bars_are_not_a_pattern():
    bar2 = make_bar(1.1020, 1.1030)
    bar1 = make_bar(1.1010, 1.1060)
    assert classify(bar1, bar2, 5, POINT) == PatternResult.NONE


def test_strategy_signal(eurusd, bullish_bars):
    strategy = EngulfingStrategy(min_body_points=10)
    signal = strategy.get_signal(bullish_bars[1:], eurusd)
    assert signal is not None
    assert signal.side == SignalSide.LONG
    assert signal.pattern == PatternResult.BULLISH_ENGULFING
    assert signal.bar_time == bullish_bars[1].time
    assert signal.metadata["body1_points"] == pytest.approx(45)


def test_strategy_needs_two_bars(eurusd, bullish_bars):
    assert EngulfingStrategy().get_signal(bullish_bars[1:2], eurusd) is None
