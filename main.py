#!/usr/bin/env python3
"""
Engulfing Bot CLI: live | check
Usage:
  python main.py live [--config config.yaml]
  python main.py check [--config config.yaml]
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engulfing_bot.agent.agent import EngulfingAgent
from engulfing_bot.core.config import load_config
from engulfing_bot.core.errors import InvalidConfiguration
from engulfing_bot.core.logger import setup_logging
from engulfing_bot.execution.binance_futures import BinanceFuturesClient
from engulfing_bot.utils.telegram import make_notifier

logger = logging.getLogger("engulfing_bot")


def run_check(config_path: Path | None) -> int:
    """Load and validate configuration, print a summary."""
    try:
        config = load_config(config_path, ROOT)
    except InvalidConfiguration as e:
        for problem in e.problems:
            print(f"config error: {problem}")
        return 2
    print("--- Configuration OK ---")
    print(f"Symbol/timeframe: {config.symbol} {config.timeframe} (testnet={config.use_testnet})")
    print(f"Lot size: {config.lot_size}  SL: {config.stop_loss_points} pts  TP: {config.take_profit_points} pts")
    print(f"Patterns: bullish={config.enable_bullish} bearish={config.enable_bearish} "
          f"min body={config.min_body_points} pts  single trade/bar={config.single_trade_per_signal}")
    print(f"Trailing: enabled={config.use_trailing_stop} distance={config.trailing_distance_points} pts "
          f"step={config.trailing_step_points} pts")
    print(f"Agent id: {config.agent_id}  comment: {config.trade_comment!r}")
    print(f"API keys: {'SET' if config.binance_api_key and config.binance_api_secret else 'NOT SET'}")
    return 0


def run_live(config_path: Path | None) -> int:
    """Run the live polling loop: one serialized on_market_update per poll."""
    try:
        config = load_config(config_path, ROOT)
    except InvalidConfiguration as e:
        print(e, file=sys.stderr)
        return 2
    setup_logging(config.log_level, config.log_dir, config.log_file)
    if not config.binance_api_key or not config.binance_api_secret:
        logger.error("Missing BINANCE_API_KEY or BINANCE_API_SECRET in .env")
        return 1
    client = BinanceFuturesClient(
        config.binance_api_key,
        config.binance_api_secret,
        testnet=config.use_testnet,
        agent_id=config.agent_id,
    )
    client.set_leverage(config.symbol, config.leverage)
    notify = make_notifier(config.telegram_bot_token, config.telegram_chat_id, prefix=f"[{config.agent_id}] ")
    agent = EngulfingAgent(config, feed=client, gateway=client, registry=client, notifier=notify)
    notify(f"Engulfing bot starting | {config.symbol} {config.timeframe} | testnet={config.use_testnet}")
    while True:
        try:
            agent.on_market_update()
            time.sleep(config.poll_interval_s)
        except KeyboardInterrupt:
            logger.info("Shutdown by user | %s", agent.state.summary())
            notify(f"Engulfing bot stopped (user request). {agent.state.summary()}")
            break
        except Exception as e:
            logger.exception("Live loop error: %s", e)
            time.sleep(5)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Engulfing Bot CLI")
    parser.add_argument("mode", choices=["live", "check"], help="Run live or validate configuration")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    args = parser.parse_args()
    if args.mode == "check":
        return run_check(args.config)
    return run_live(args.config)


if __name__ == "__main__":
    sys.exit(main())
