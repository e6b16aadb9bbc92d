"""In-memory feed, gateway and registry for agent tests."""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from engulfing_bot.core.config import Config
from engulfing_bot.core.errors import FeedUnavailable
from engulfing_bot.core.types import Bar, InstrumentSpec, OrderRequest, Position
from engulfing_bot.execution.base import ExecutionGateway, OrderResult, PositionRegistry, PriceFeed

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_bar(open_: float, close: float, minutes: int = 0) -> Bar:
    return Bar(
        time=T0 + timedelta(minutes=minutes),
        open=open_,
        high=max(open_, close) + 0.0005,
        low=min(open_, close) - 0.0005,
        close=close,
    )


class FakeFeed(PriceFeed):
    """Bars newest first (index 0 = forming). Set unavailable=True to fail every read."""

    def __init__(self, bars: List[Bar], bid: float = 1.1000, ask: float = 1.1002,
                 instrument: Optional[InstrumentSpec] = None):
        self.bars = bars
        self.bid = bid
        self.ask = ask
        self.instrument = instrument or InstrumentSpec("EURUSD", point=0.0001, digits=4)
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise FeedUnavailable("feed down")

    def get_bar(self, symbol: str, timeframe: str, bars_ago: int) -> Bar:
        self._check()
        if bars_ago >= len(self.bars):
            raise FeedUnavailable("not enough history")
        return self.bars[bars_ago]

    def get_bid(self, symbol: str) -> float:
        self._check()
        return self.bid

    def get_ask(self, symbol: str) -> float:
        self._check()
        return self.ask

    def get_instrument(self, symbol: str) -> InstrumentSpec:
        self._check()
        return self.instrument


class FakeGateway(ExecutionGateway):
    def __init__(self, registry: Optional["FakeRegistry"] = None):
        self.orders: List[OrderRequest] = []
        self.modifications: List[tuple] = []
        self.reject_orders = False
        self.reject_modifications = False
        self.registry = registry

    def submit_market_order(self, request: OrderRequest) -> OrderResult:
        self.orders.append(request)
        if self.reject_orders:
            return OrderResult(success=False, message="market closed")
        return OrderResult(success=True, position_id=f"pos-{len(self.orders)}",
                           avg_price=request.entry_price, quantity=request.volume)

    def modify_position(self, position_id: str, stop_loss: float, take_profit: float) -> OrderResult:
        self.modifications.append((position_id, stop_loss, take_profit))
        if self.reject_modifications:
            return OrderResult(success=False, position_id=position_id, message="too close to market")
        if self.registry is not None:
            self.registry.update_stop(position_id, stop_loss, take_profit)
        return OrderResult(success=True, position_id=position_id)


class FakeRegistry(PositionRegistry):
    """Returns every stored position regardless of arguments, like a sloppy venue would."""

    def __init__(self, positions: Optional[List[Position]] = None):
        self.positions: Dict[str, Position] = {p.position_id: p for p in positions or []}

    def list_open_positions(self, symbol: str, owner_tag: str) -> List[Position]:
        return list(self.positions.values())

    def update_stop(self, position_id: str, stop_loss: float, take_profit: float) -> None:
        p = self.positions[position_id]
        p.stop_loss = stop_loss
        p.take_profit = take_profit


@pytest.fixture
def eurusd() -> InstrumentSpec:
    return InstrumentSpec("EURUSD", point=0.0001, digits=4)


@pytest.fixture
def config() -> Config:
    return Config(
        symbol="EURUSD",
        timeframe="1h",
        lot_size=0.1,
        stop_loss_points=50,
        take_profit_points=100,
        min_body_points=10,
        agent_id="engulf01",
        trade_comment="Engulfing",
        use_trailing_stop=True,
        trailing_distance_points=50,
        trailing_step_points=10,
    )


@pytest.fixture
def bullish_bars() -> List[Bar]:
    """Forming bar, then bar1 (bullish engulfing), then bar2 (bearish)."""
    return [
        make_bar(1.1060, 1.1062, minutes=120),
        make_bar(1.1015, 1.1060, minutes=60),
        make_bar(1.1050, 1.1020, minutes=0),
    ]
