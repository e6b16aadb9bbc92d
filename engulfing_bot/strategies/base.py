"""Abstract strategy: signal generation from closed bars."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from engulfing_bot.core.types import Bar, InstrumentSpec, Signal


class BaseStrategy(ABC):
    """Strategy inspects closed bars and may return a Signal."""

    #: closed bars get_signal needs, newest first
    bars_required: int = 1

    @abstractmethod
    def get_signal(self, bars: Sequence[Bar], instrument: InstrumentSpec) -> Optional[Signal]:
        """
        Return a Signal for the closed bars (bars[0] = most recently closed) or None.
        Must never look at the forming bar.
        """
        pass
