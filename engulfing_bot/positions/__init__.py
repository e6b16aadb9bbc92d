"""Position management: entries with SL/TP and the trailing stop."""

from engulfing_bot.positions.entry import EntryManager, protective_levels
from engulfing_bot.positions.trailing import TrailingStopManager, compute_trailing_stop

__all__ = ["EntryManager", "protective_levels", "TrailingStopManager", "compute_trailing_stop"]
