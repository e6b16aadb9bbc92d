"""
Binance USDT-M Futures adapter: price feed, execution gateway and position registry.

Ownership: every order carries a client order id "<owner_tag>-<kind>-<ms>[-<comment>]"
with kind in in/sl/tp. A position is owned when it has a tagged protective order or
was opened by this process. Protective orders are reduce-only with an explicit quantity.
Read-only calls retry on rate limits; order placement never retries.
"""

from __future__ import annotations
import functools
import logging
import re
import time
from typing import Dict, List, Optional

import pandas as pd
import requests

from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceRequestException

from engulfing_bot.core.errors import FeedUnavailable
from engulfing_bot.core.types import Bar, InstrumentSpec, OrderRequest, Position, SignalSide
from engulfing_bot.execution.base import ExecutionGateway, OrderResult, PositionRegistry, PriceFeed
from engulfing_bot.utils.exchange_filters import (
    parse_symbol_filters,
    price_digits,
    round_price,
    round_quantity,
)

logger = logging.getLogger("engulfing_bot.execution.binance")

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


# Binance rejects newClientOrderId longer than this
CLIENT_ORDER_ID_MAX = 36

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def feed_errors(f):
    """Decorator: turn transport/API failures on read calls into FeedUnavailable."""
    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (BinanceAPIException, BinanceRequestException, requests.RequestException) as e:
            raise FeedUnavailable(f"{f.__name__}: {e}") from e
    return wrapped


def klines_to_frame(raw: list) -> pd.DataFrame:
    """Binance kline rows -> DataFrame with time, open, high, low, close, volume."""
    df = pd.DataFrame(raw, columns=KLINE_COLUMNS)
    df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
    df["time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    return df[["time", "open", "high", "low", "close", "volume"]]


def frame_to_bars(df: pd.DataFrame) -> List[Bar]:
    """DataFrame rows -> Bars, newest first."""
    bars = []
    for row in df.iloc[::-1].itertuples(index=False):
        bars.append(Bar(
            time=row.time.to_pydatetime() if isinstance(row.time, pd.Timestamp) else row.time,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        ))
    return bars


def position_id_for(symbol: str, side: SignalSide) -> str:
    return f"{symbol}:{side.value}"


def parse_position_id(position_id: str) -> tuple[str, SignalSide]:
    symbol, _, side = position_id.partition(":")
    return symbol, SignalSide(side)


class BinanceFuturesClient(PriceFeed, ExecutionGateway, PositionRegistry):
    """Binance USDT-M Futures client (testnet and live), one-way position mode."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        testnet: bool = True,
        agent_id: str = "engulf01",
        client: Optional[Client] = None,
    ):
        self._client = client or Client(api_key, api_secret, testnet=testnet)
        logger.info("Binance Futures: using %s", "TESTNET" if testnet else "LIVE")
        self.agent_id = agent_id
        self._symbol_info_cache: Dict[str, dict] = {}
        # position_id -> owner tag of positions this process opened
        self._owners: Dict[str, str] = {}

    # ----- price feed -----

    @feed_errors
    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_klines(self, symbol: str, interval: str, limit: int = 300) -> pd.DataFrame:
        raw = self._client.futures_klines(symbol=symbol, interval=interval, limit=limit)
        return klines_to_frame(raw)

    def get_bars(self, symbol: str, timeframe: str, count: int) -> List[Bar]:
        df = self.get_klines(symbol, timeframe, limit=count)
        if len(df) < count:
            raise FeedUnavailable(f"{symbol} {timeframe}: {len(df)} bars, need {count}")
        return frame_to_bars(df)

    def get_bar(self, symbol: str, timeframe: str, bars_ago: int) -> Bar:
        return self.get_bars(symbol, timeframe, bars_ago + 1)[bars_ago]

    @feed_errors
    @retry_on_rate_limit(max_retries=3)
    def _book_ticker(self, symbol: str) -> dict:
        return self._client.futures_orderbook_ticker(symbol=symbol)

    def get_bid(self, symbol: str) -> float:
        return float(self._book_ticker(symbol)["bidPrice"])

    def get_ask(self, symbol: str) -> float:
        return float(self._book_ticker(symbol)["askPrice"])

    @feed_errors
    @retry_on_rate_limit(max_retries=2)
    def get_symbol_info(self, symbol: str) -> Optional[dict]:
        if symbol in self._symbol_info_cache:
            return self._symbol_info_cache[symbol]
        info = self._client.futures_exchange_info()
        for s in info.get("symbols", []):
            if s.get("symbol") == symbol:
                self._symbol_info_cache[symbol] = s
                return s
        return None

    def get_instrument(self, symbol: str) -> InstrumentSpec:
        info = self.get_symbol_info(symbol)
        if info is None:
            raise FeedUnavailable(f"Unknown symbol {symbol}")
        _, _, tick = parse_symbol_filters(info)
        return InstrumentSpec(symbol=symbol, point=tick, digits=price_digits(tick))

    def set_leverage(self, symbol: str, leverage: int) -> None:
        try:
            self._client.futures_change_leverage(symbol=symbol, leverage=leverage)
            logger.info("Leverage set to %sx for %s", leverage, symbol)
        except BinanceAPIException as e:
            logger.warning("Could not set leverage: %s", e)

    # ----- execution gateway -----

    def _client_order_id(self, kind: str, tag: Optional[str] = None, comment: str = "") -> str:
        """<tag>-<kind>-<base36 ms>[-<comment>], cut to Binance's 36-character limit."""
        cid = f"{tag or self.agent_id}-{kind}-{_base36(int(time.time() * 1000))}"
        slug = re.sub(r"[^A-Za-z0-9_]", "", comment.replace(" ", "_"))
        if slug:
            cid = f"{cid}-{slug}"
        return cid[:CLIENT_ORDER_ID_MAX]

    def _place_protective(
        self, symbol: str, close_side: str, kind: str, order_type: str, price: float, qty: float, tag: str
    ) -> dict:
        # reduceOnly + quantity: closePosition orders allow only one per side (-4130),
        # which would block placing the new stop before cancelling the old one
        return self._client.futures_create_order(
            symbol=symbol,
            side=close_side,
            type=order_type,
            stopPrice=str(price),
            quantity=str(qty),
            reduceOnly="true",
            workingType="MARK_PRICE",
            newClientOrderId=self._client_order_id(kind, tag),
        )

    def submit_market_order(self, request: OrderRequest) -> OrderResult:
        """Market order, then reduce-only STOP_MARKET / TAKE_PROFIT_MARKET if set."""
        symbol = request.symbol
        tag = request.owner_tag or self.agent_id
        min_qty, lot_step, tick = parse_symbol_filters(self._cached_info(symbol))
        qty = round_quantity(request.volume, min_qty, lot_step)
        if qty <= 0:
            return OrderResult(success=False, message=f"volume {request.volume} below min qty {min_qty}")
        close_side = SignalSide.SHORT.value if request.side == SignalSide.LONG else SignalSide.LONG.value
        try:
            res = self._client.futures_create_order(
                symbol=symbol,
                side=request.side.value,
                type="MARKET",
                quantity=str(qty),
                newClientOrderId=self._client_order_id("in", tag, request.comment),
            )
        except (BinanceAPIException, BinanceRequestException, requests.RequestException) as e:
            logger.error("Binance order error: %s", e)
            return OrderResult(success=False, message=str(e))

        avg = float(res.get("avgPrice") or 0) or request.entry_price
        position_id = position_id_for(symbol, request.side)
        self._owners[position_id] = tag
        logger.info(
            "Filled %s %s %s @ %s [%s] %s",
            request.side.value, qty, symbol, avg, tag, request.comment or "",
        )
        message = ""
        try:
            if request.stop_loss > 0:
                self._place_protective(
                    symbol, close_side, "sl", "STOP_MARKET", round_price(request.stop_loss, tick), qty, tag
                )
            if request.take_profit > 0:
                self._place_protective(
                    symbol, close_side, "tp", "TAKE_PROFIT_MARKET", round_price(request.take_profit, tick), qty, tag
                )
        except (BinanceAPIException, BinanceRequestException, requests.RequestException) as e:
            # The entry is filled; the trailing pass can still protect it later
            logger.error("Protective order for %s failed: %s", position_id, e)
            message = f"protective order failed: {e}"
        return OrderResult(
            success=True,
            position_id=position_id,
            order_id=str(res.get("orderId")),
            avg_price=avg,
            quantity=qty,
            message=message,
        )

    def modify_position(self, position_id: str, stop_loss: float, take_profit: float) -> OrderResult:
        """
        Replace this agent's stop (and take-profit if it changed) for the position.

        Succeeds once the new stop is on the book; stale orders that fail to cancel are
        logged and left for the next replacement to retry.
        """
        symbol, side = parse_position_id(position_id)
        tag = self._owners.get(position_id, self.agent_id)
        close_side = SignalSide.SHORT.value if side == SignalSide.LONG else SignalSide.LONG.value
        _, _, tick = parse_symbol_filters(self._cached_info(symbol))
        try:
            qty = self._position_quantity(symbol, side)
            if qty <= 0:
                return OrderResult(success=False, position_id=position_id, message="position not open")
            orders = self._tagged_orders(symbol, tag)
            current_tp = self._level(orders, "tp", close_side, tag)
            self._replace(symbol, orders, "sl", close_side, "STOP_MARKET", stop_loss, tick, qty, tag)
            if take_profit != current_tp:
                self._replace(symbol, orders, "tp", close_side, "TAKE_PROFIT_MARKET", take_profit, tick, qty, tag)
        except (BinanceAPIException, BinanceRequestException, requests.RequestException) as e:
            return OrderResult(success=False, position_id=position_id, message=str(e))
        return OrderResult(success=True, position_id=position_id, quantity=qty)

    def _replace(
        self,
        symbol: str,
        orders: List[dict],
        kind: str,
        close_side: str,
        order_type: str,
        price: float,
        tick: float,
        qty: float,
        tag: str,
    ) -> None:
        # New level goes in before the old one is cancelled so the position is never unprotected
        if price > 0:
            self._place_protective(symbol, close_side, kind, order_type, round_price(price, tick), qty, tag)
        for o in orders:
            if self._kind(o, tag) != kind or o.get("side") != close_side:
                continue
            try:
                self._client.futures_cancel_order(symbol=symbol, orderId=o["orderId"])
            except (BinanceAPIException, BinanceRequestException, requests.RequestException) as e:
                logger.warning("Could not cancel stale %s order %s: %s", kind, o.get("clientOrderId"), e)

    # ----- position registry -----

    def _cached_info(self, symbol: str) -> Optional[dict]:
        try:
            return self.get_symbol_info(symbol)
        except FeedUnavailable:
            return self._symbol_info_cache.get(symbol)

    def _position_quantity(self, symbol: str, side: SignalSide) -> float:
        for p in self._client.futures_position_information(symbol=symbol):
            amt = float(p.get("positionAmt", 0.0))
            if (amt > 0 and side == SignalSide.LONG) or (amt < 0 and side == SignalSide.SHORT):
                return abs(amt)
        return 0.0

    @staticmethod
    def _kind(order: dict, tag: str) -> Optional[str]:
        parts = str(order.get("clientOrderId", "")).split("-")
        if len(parts) >= 3 and parts[0] == tag:
            return parts[1]
        return None

    def _tagged_orders(self, symbol: str, tag: str) -> List[dict]:
        orders = self._client.futures_get_open_orders(symbol=symbol)
        return [o for o in orders if self._kind(o, tag) in ("sl", "tp")]

    def _level(self, orders: List[dict], kind: str, close_side: str, tag: str) -> float:
        """Live level of kind; with leftovers, the most protective stop and the newest target."""
        matching = [o for o in orders if self._kind(o, tag) == kind and o.get("side") == close_side]
        if not matching:
            return 0.0
        if kind == "sl":
            prices = [float(o.get("stopPrice", 0.0)) for o in matching]
            # SELL stops protect longs (higher is tighter), BUY stops protect shorts
            return max(prices) if close_side == SignalSide.SHORT.value else min(prices)
        newest = max(matching, key=lambda o: int(o.get("orderId", 0)))
        return float(newest.get("stopPrice", 0.0))

    @feed_errors
    @retry_on_rate_limit(max_retries=2)
    def list_open_positions(self, symbol: str, owner_tag: str) -> List[Position]:
        pos_info = self._client.futures_position_information(symbol=symbol)
        orders = self._tagged_orders(symbol, owner_tag)
        positions = []
        open_ids = set()
        for p in pos_info:
            amt = float(p.get("positionAmt", 0.0))
            if amt == 0:
                continue
            side = SignalSide.LONG if amt > 0 else SignalSide.SHORT
            close_side = SignalSide.SHORT.value if side == SignalSide.LONG else SignalSide.LONG.value
            position_id = position_id_for(symbol, side)
            open_ids.add(position_id)
            tagged = any(o.get("side") == close_side for o in orders)
            if not tagged and self._owners.get(position_id) != owner_tag:
                continue
            positions.append(Position(
                position_id=position_id,
                symbol=symbol,
                side=side,
                quantity=abs(amt),
                open_price=float(p.get("entryPrice", 0)),
                stop_loss=self._level(orders, "sl", close_side, owner_tag),
                take_profit=self._level(orders, "tp", close_side, owner_tag),
                owner_tag=owner_tag,
            ))
        for closed in [pid for pid in self._owners if pid.startswith(f"{symbol}:") and pid not in open_ids]:
            del self._owners[closed]
        return positions
