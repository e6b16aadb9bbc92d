"""
Engulfing agent: bar clock -> pattern detector -> entry, plus the trailing stop.

The host calls on_market_update() once per price update, serially. All I/O goes
through the feed, gateway and registry passed in.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from engulfing_bot.agent.clock import BarClock
from engulfing_bot.core.config import Config
from engulfing_bot.core.errors import ExecutionRejected, FeedUnavailable
from engulfing_bot.core.state import AgentState
from engulfing_bot.core.types import InstrumentSpec, Signal
from engulfing_bot.execution.base import ExecutionGateway, PositionRegistry, PriceFeed
from engulfing_bot.positions.entry import EntryManager
from engulfing_bot.positions.trailing import TrailingStopManager
from engulfing_bot.strategies.engulfing import EngulfingStrategy

logger = logging.getLogger("engulfing_bot.agent")


class EngulfingAgent:
    """Single-symbol, single-timeframe engulfing trader."""

    def __init__(
        self,
        config: Config,
        feed: PriceFeed,
        gateway: ExecutionGateway,
        registry: PositionRegistry,
        state: Optional[AgentState] = None,
        notifier: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.feed = feed
        self.state = state or AgentState()
        self.notifier = notifier
        self.clock = BarClock()
        self.strategy = EngulfingStrategy(
            min_body_points=config.min_body_points,
            enable_bullish=config.enable_bullish,
            enable_bearish=config.enable_bearish,
        )
        self.entries = EntryManager(
            feed=feed,
            gateway=gateway,
            symbol=config.symbol,
            lot_size=config.lot_size,
            stop_loss_points=config.stop_loss_points,
            take_profit_points=config.take_profit_points,
            owner_tag=config.agent_id,
            comment=config.trade_comment,
        )
        self.trailing = TrailingStopManager(
            feed=feed,
            gateway=gateway,
            registry=registry,
            symbol=config.symbol,
            owner_tag=config.agent_id,
            distance_points=config.trailing_distance_points,
            step_points=config.trailing_step_points,
        )
        self._instrument: Optional[InstrumentSpec] = None

    @property
    def instrument(self) -> InstrumentSpec:
        """Fetched once from the feed; raises FeedUnavailable until it succeeds."""
        if self._instrument is None:
            self._instrument = self.feed.get_instrument(self.config.symbol)
            logger.info(
                "Instrument %s: point=%s digits=%d",
                self._instrument.symbol, self._instrument.point, self._instrument.digits,
            )
        return self._instrument

    def on_market_update(self) -> None:
        """Host entry point. Never raises for feed or execution errors."""
        self.step(self.state)

    def step(self, state: AgentState) -> None:
        """One update cycle against an explicit state."""
        try:
            instrument = self.instrument
        except FeedUnavailable as e:
            logger.debug("Instrument info unavailable: %s", e)
            return
        self._evaluate_entry(state, instrument)
        if self.config.use_trailing_stop:
            try:
                self.trailing.apply(state, instrument)
            except FeedUnavailable as e:
                logger.debug("Trailing pass skipped: %s", e)

    def _evaluate_entry(self, state: AgentState, instrument: InstrumentSpec) -> None:
        try:
            bars = self.feed.get_bars(self.config.symbol, self.config.timeframe, self.strategy.bars_required + 1)
        except FeedUnavailable as e:
            logger.debug("No bars this cycle: %s", e)
            return
        if len(bars) < self.strategy.bars_required + 1:
            logger.debug("Only %d bars available, need %d", len(bars), self.strategy.bars_required + 1)
            return
        if not self.clock.on_update(state, bars[0].time):
            return
        signal = self.strategy.get_signal(bars[1:], instrument)
        if signal is None:
            return
        state.signals_seen += 1
        if self.config.single_trade_per_signal and state.trade_taken_this_bar:
            logger.info("Trade already taken this bar, ignoring %s", signal.pattern.value)
            return
        self._enter(state, signal, instrument)

    def _enter(self, state: AgentState, signal: Signal, instrument: InstrumentSpec) -> None:
        try:
            result = self.entries.open_position(state, signal.side, instrument, signal.bar_time)
        except FeedUnavailable as e:
            logger.warning("No quote for %s entry: %s", signal.side.value, e)
            return
        except ExecutionRejected as e:
            self._notify(f"Entry {signal.side.value} {self.config.symbol} rejected: {e.reason}")
            return
        self._notify(
            f"Entry {signal.side.value} {self.config.symbol} ({signal.pattern.value}) "
            f"position={result.position_id} price={result.avg_price}"
        )

    def _notify(self, text: str) -> None:
        if self.notifier is not None:
            self.notifier(text)
