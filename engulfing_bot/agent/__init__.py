"""Agent: bar clock and the per-update orchestration."""

from engulfing_bot.agent.clock import BarClock
from engulfing_bot.agent.agent import EngulfingAgent

__all__ = ["BarClock", "EngulfingAgent"]
