"""Bar clock: debounces pattern evaluation to once per bar."""

from __future__ import annotations
import logging
from datetime import datetime

from engulfing_bot.core.state import AgentState

logger = logging.getLogger("engulfing_bot.agent.clock")


class BarClock:
    """Reports True exactly once per forming-bar timestamp."""

    def on_update(self, state: AgentState, bar_time: datetime) -> bool:
        if state.last_bar_time == bar_time:
            return False
        logger.debug("New bar %s (previous %s)", bar_time, state.last_bar_time)
        state.last_bar_time = bar_time
        state.trade_taken_this_bar = False
        return True
