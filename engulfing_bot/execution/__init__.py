"""Execution: collaborator interfaces and the Binance Futures implementation."""

from engulfing_bot.execution.base import ExecutionGateway, OrderResult, PositionRegistry, PriceFeed
from engulfing_bot.execution.binance_futures import BinanceFuturesClient

__all__ = ["ExecutionGateway", "OrderResult", "PositionRegistry", "PriceFeed", "BinanceFuturesClient"]
