"""Strategies: base interface and the engulfing pattern detector."""

from engulfing_bot.strategies.base import BaseStrategy
from engulfing_bot.strategies.engulfing import EngulfingStrategy, body_points, classify

__all__ = ["BaseStrategy", "EngulfingStrategy", "body_points", "classify"]
