"""
Entry: turn a signal into a market order with fixed point-distance SL/TP.
No automatic retry: a rejected entry is lost for that bar.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from engulfing_bot.core.state import AgentState
from engulfing_bot.core.errors import ExecutionRejected
from engulfing_bot.core.types import InstrumentSpec, OrderRequest, SignalSide
from engulfing_bot.execution.base import ExecutionGateway, OrderResult, PriceFeed
from engulfing_bot.utils.exchange_filters import points_to_price

logger = logging.getLogger("engulfing_bot.positions.entry")


def protective_levels(
    side: SignalSide,
    price: float,
    stop_loss_points: float,
    take_profit_points: float,
    instrument: InstrumentSpec,
) -> tuple[float, float]:
    """(stop_loss, take_profit) for an entry at price. A zero distance yields 0.0 (none)."""
    sign = 1 if side == SignalSide.LONG else -1
    sl = 0.0
    tp = 0.0
    if stop_loss_points > 0:
        sl = instrument.normalize(price - sign * points_to_price(stop_loss_points, instrument.point))
    if take_profit_points > 0:
        tp = instrument.normalize(price + sign * points_to_price(take_profit_points, instrument.point))
    return sl, tp


class EntryManager:
    """Opens positions for detected signals."""

    def __init__(
        self,
        feed: PriceFeed,
        gateway: ExecutionGateway,
        symbol: str,
        lot_size: float,
        stop_loss_points: float,
        take_profit_points: float,
        owner_tag: str,
        comment: str = "",
    ):
        self.feed = feed
        self.gateway = gateway
        self.symbol = symbol
        self.lot_size = lot_size
        self.stop_loss_points = stop_loss_points
        self.take_profit_points = take_profit_points
        self.owner_tag = owner_tag
        self.comment = comment

    def build_request(self, side: SignalSide, instrument: InstrumentSpec) -> OrderRequest:
        """Price the order off the current quote: ask for buys, bid for sells."""
        if side == SignalSide.LONG:
            price = self.feed.get_ask(self.symbol)
        else:
            price = self.feed.get_bid(self.symbol)
        price = instrument.normalize(price)
        sl, tp = protective_levels(side, price, self.stop_loss_points, self.take_profit_points, instrument)
        return OrderRequest(
            symbol=self.symbol,
            side=side,
            volume=self.lot_size,
            entry_price=price,
            stop_loss=sl,
            take_profit=tp,
            owner_tag=self.owner_tag,
            comment=self.comment,
        )

    def open_position(
        self,
        state: AgentState,
        side: SignalSide,
        instrument: InstrumentSpec,
        bar_time: Optional[datetime] = None,
    ) -> OrderResult:
        """
        Submit the entry. On success marks the bar as traded and records the position id.
        Raises ExecutionRejected on gateway failure (bar gate left open).
        """
        request = self.build_request(side, instrument)
        state.orders_submitted += 1
        result = self.gateway.submit_market_order(request)
        if not result.success:
            logger.error(
                "Error opening %s order on %s (bar %s): %s",
                side.value, self.symbol, bar_time, result.message or "rejected",
            )
            raise ExecutionRejected(result.message or "order rejected", request=request)
        state.trade_taken_this_bar = True
        state.last_position_id = result.position_id
        logger.info(
            "Opened %s %s vol=%s @ %s SL=%s TP=%s position=%s",
            side.value, self.symbol, request.volume, result.avg_price or request.entry_price,
            request.stop_loss, request.take_profit, result.position_id,
        )
        return result
