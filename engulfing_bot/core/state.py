"""Explicit per-agent state threaded through every update."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional


@dataclass
class AgentState:
    """
    Bar gate plus trailing-stop bookkeeping.

    last_bar_time / trade_taken_this_bar: reset together when a new bar appears.
    trailing_stops: position_id -> last stop this agent applied (a floor for longs,
    a ceiling for shorts). trailing_entries: position_id -> open price it was applied to.
    """
    last_bar_time: Optional[datetime] = None
    trade_taken_this_bar: bool = False
    last_position_id: Optional[str] = None
    trailing_stops: Dict[str, float] = field(default_factory=dict)
    trailing_entries: Dict[str, float] = field(default_factory=dict)
    signals_seen: int = 0
    orders_submitted: int = 0

    def summary(self) -> str:
        return (
            f"signals={self.signals_seen} orders={self.orders_submitted} "
            f"last_position={self.last_position_id or '-'} trailing={len(self.trailing_stops)}"
        )
