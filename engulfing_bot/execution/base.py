"""Abstract collaborators: price feed, execution gateway, position registry."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from engulfing_bot.core.types import Bar, InstrumentSpec, OrderRequest, Position


@dataclass
class OrderResult:
    """Result of submitting an order or modifying a position."""
    success: bool
    position_id: Optional[str] = None
    order_id: Optional[str] = None
    avg_price: Optional[float] = None
    quantity: Optional[float] = None
    message: str = ""


class PriceFeed(ABC):
    """Bars, quotes and instrument precision. Raises FeedUnavailable when data is missing."""

    @abstractmethod
    def get_bar(self, symbol: str, timeframe: str, bars_ago: int) -> Bar:
        """Bar `bars_ago` back from the forming one (0 = forming, 1 = last closed)."""
        pass

    @abstractmethod
    def get_bid(self, symbol: str) -> float:
        pass

    @abstractmethod
    def get_ask(self, symbol: str) -> float:
        pass

    @abstractmethod
    def get_instrument(self, symbol: str) -> InstrumentSpec:
        """Point size and price precision for symbol."""
        pass

    def get_bars(self, symbol: str, timeframe: str, count: int) -> List[Bar]:
        """Most recent `count` bars, newest first (index 0 = forming bar)."""
        return [self.get_bar(symbol, timeframe, i) for i in range(count)]


class ExecutionGateway(ABC):
    """Accepts order requests. Failures come back as OrderResult(success=False)."""

    @abstractmethod
    def submit_market_order(self, request: OrderRequest) -> OrderResult:
        """Market order with attached SL/TP. position_id is set on success."""
        pass

    @abstractmethod
    def modify_position(self, position_id: str, stop_loss: float, take_profit: float) -> OrderResult:
        """Replace protective levels of an open position."""
        pass


class PositionRegistry(ABC):
    """Enumerates open positions."""

    @abstractmethod
    def list_open_positions(self, symbol: str, owner_tag: str) -> List[Position]:
        """Open positions on symbol owned by owner_tag."""
        pass
