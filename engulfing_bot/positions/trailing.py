"""
Trailing stop: advance stops of owned, profitable positions by fixed point distances.
Stops only ever move in the profit-protecting direction.
"""

from __future__ import annotations
import dataclasses
import logging
from typing import List, Optional

from engulfing_bot.core.state import AgentState
from engulfing_bot.core.types import InstrumentSpec, Position, SignalSide
from engulfing_bot.execution.base import ExecutionGateway, PositionRegistry, PriceFeed
from engulfing_bot.utils.exchange_filters import points_to_price, price_to_points

logger = logging.getLogger("engulfing_bot.positions.trailing")


def compute_trailing_stop(
    position: Position,
    price: float,
    instrument: InstrumentSpec,
    distance_points: float,
    step_points: float,
) -> Optional[float]:
    """
    New stop for position at the close-out price, or None to leave it alone.

    Trails only once price is distance_points beyond the open, and only moves an
    existing stop when the improvement is at least step_points.
    """
    offset = points_to_price(distance_points, instrument.point)
    if position.side == SignalSide.LONG:
        if price_to_points(price - position.open_price, instrument.point) < distance_points:
            return None
        candidate = instrument.normalize(price - offset)
        if position.has_stop and price_to_points(candidate - position.stop_loss, instrument.point) < step_points:
            return None
    else:
        if price_to_points(position.open_price - price, instrument.point) < distance_points:
            return None
        candidate = instrument.normalize(price + offset)
        if position.has_stop and price_to_points(position.stop_loss - candidate, instrument.point) < step_points:
            return None
    # step 0 would otherwise resubmit an unchanged stop every tick
    if position.has_stop and candidate == position.stop_loss:
        return None
    return candidate


class TrailingStopManager:
    """Re-protects this agent's open positions on every update."""

    def __init__(
        self,
        feed: PriceFeed,
        gateway: ExecutionGateway,
        registry: PositionRegistry,
        symbol: str,
        owner_tag: str,
        distance_points: float,
        step_points: float,
    ):
        self.feed = feed
        self.gateway = gateway
        self.registry = registry
        self.symbol = symbol
        self.owner_tag = owner_tag
        self.distance_points = distance_points
        self.step_points = step_points

    def owned_positions(self) -> List[Position]:
        positions = self.registry.list_open_positions(self.symbol, self.owner_tag)
        return [p for p in positions if p.symbol == self.symbol and p.owner_tag == self.owner_tag]

    def _tracked_stop(self, state: AgentState, position: Position) -> Optional[float]:
        """Last stop this agent applied, if it belongs to the same opening."""
        pid = position.position_id
        if pid in state.trailing_stops and state.trailing_entries.get(pid) != position.open_price:
            # Same id, different open price: the venue reused the id for a new position
            del state.trailing_stops[pid]
            state.trailing_entries.pop(pid, None)
        return state.trailing_stops.get(pid)

    def effective_position(self, state: AgentState, position: Position) -> Position:
        """Position with its stop tightened to the ledger, so a lagging registry cannot rewind it."""
        tracked = self._tracked_stop(state, position)
        if tracked is None:
            return position
        if not position.has_stop:
            stop = tracked
        elif position.side == SignalSide.LONG:
            stop = max(position.stop_loss, tracked)
        else:
            stop = min(position.stop_loss, tracked)
        return dataclasses.replace(position, stop_loss=stop)

    def apply(self, state: AgentState, instrument: InstrumentSpec) -> int:
        """One trailing pass. Returns the number of stops moved."""
        positions = self.owned_positions()
        open_ids = {p.position_id for p in positions}
        for stale in [pid for pid in state.trailing_stops if pid not in open_ids]:
            del state.trailing_stops[stale]
            state.trailing_entries.pop(stale, None)
        if not positions:
            return 0

        bid = self.feed.get_bid(self.symbol)
        ask = self.feed.get_ask(self.symbol)
        moved = 0
        for position in (self.effective_position(state, p) for p in positions):
            price = bid if position.side == SignalSide.LONG else ask
            new_stop = compute_trailing_stop(
                position, price, instrument, self.distance_points, self.step_points
            )
            if new_stop is None:
                continue
            result = self.gateway.modify_position(position.position_id, new_stop, position.take_profit)
            if not result.success:
                logger.debug(
                    "Trailing stop for %s not moved to %s: %s",
                    position.position_id, new_stop, result.message,
                )
                continue
            logger.info(
                "Trailing stop %s %s: %s -> %s (price %s)",
                position.side.value, position.position_id, position.stop_loss or "none", new_stop, price,
            )
            state.trailing_stops[position.position_id] = new_stop
            state.trailing_entries[position.position_id] = position.open_price
            moved += 1
        return moved
