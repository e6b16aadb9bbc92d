"""Core: config, types, errors, agent state, logging."""

from engulfing_bot.core.config import load_config, Config
from engulfing_bot.core.errors import BotError, ExecutionRejected, FeedUnavailable, InvalidConfiguration
from engulfing_bot.core.types import (
    Bar,
    InstrumentSpec,
    OrderRequest,
    PatternResult,
    Position,
    Signal,
    SignalSide,
)
from engulfing_bot.core.state import AgentState
from engulfing_bot.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "BotError",
    "ExecutionRejected",
    "FeedUnavailable",
    "InvalidConfiguration",
    "Bar",
    "InstrumentSpec",
    "OrderRequest",
    "PatternResult",
    "Position",
    "Signal",
    "SignalSide",
    "AgentState",
    "setup_logging",
]
