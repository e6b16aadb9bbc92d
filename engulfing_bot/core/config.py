"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv

from engulfing_bot.core.errors import InvalidConfiguration
from engulfing_bot.utils.timeframes import timeframe_minutes

logger = logging.getLogger("engulfing_bot.config")

# Agent id is embedded in Binance client order ids (max 36 chars, [A-Za-z0-9_-])
_AGENT_ID_RE = re.compile(r"^[A-Za-z0-9_]{1,16}$")


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns a validated Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Env overrides (for secrets and overrides)
    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).strip().lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    strategy = data.get("strategy", {})
    trailing = data.get("trailing", {})
    execution = data.get("execution", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", True))
    # Dedicated testnet/mainnet keys can live side by side in .env; USE_TESTNET picks one
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    config = Config(
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        symbol=env("SYMBOL", strategy.get("symbol", "BTCUSDT")).upper(),
        timeframe=env("TIMEFRAME", strategy.get("timeframe", "1h")),
        # Strategy
        lot_size=env_float("LOT_SIZE", execution.get("lot_size", 0.01)),
        stop_loss_points=env_float("STOP_LOSS_POINTS", strategy.get("stop_loss_points", 500)),
        take_profit_points=env_float("TAKE_PROFIT_POINTS", strategy.get("take_profit_points", 1000)),
        enable_bullish=env_bool("ENABLE_BULLISH", strategy.get("enable_bullish", True)),
        enable_bearish=env_bool("ENABLE_BEARISH", strategy.get("enable_bearish", True)),
        min_body_points=env_float("MIN_BODY_POINTS", strategy.get("min_body_points", 10)),
        single_trade_per_signal=env_bool(
            "SINGLE_TRADE_PER_SIGNAL", strategy.get("single_trade_per_signal", True)
        ),
        # Identity
        agent_id=env("AGENT_ID", str(execution.get("agent_id", "engulf01"))),
        trade_comment=env("TRADE_COMMENT", execution.get("trade_comment", "Engulfing")),
        # Trailing stop
        use_trailing_stop=env_bool("USE_TRAILING_STOP", trailing.get("enabled", False)),
        trailing_distance_points=env_float("TRAILING_DISTANCE_POINTS", trailing.get("distance_points", 300)),
        trailing_step_points=env_float("TRAILING_STEP_POINTS", trailing.get("step_points", 50)),
        # Execution
        leverage=env_int("LEVERAGE", execution.get("leverage", 1)),
        poll_interval_s=env_float("POLL_INTERVAL_S", execution.get("poll_interval_s", 1.0)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", str(telegram.get("chat_id", ""))),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "engulfing_bot.log"),
    )
    config.validate()
    return config


class Config:
    """Unified configuration. Treated as immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet", "symbol", "timeframe",
        "lot_size", "stop_loss_points", "take_profit_points",
        "enable_bullish", "enable_bearish", "min_body_points", "single_trade_per_signal",
        "agent_id", "trade_comment",
        "use_trailing_stop", "trailing_distance_points", "trailing_step_points",
        "leverage", "poll_interval_s",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = True,
        symbol: str = "BTCUSDT",
        timeframe: str = "1h",
        lot_size: float = 0.01,
        stop_loss_points: float = 500,
        take_profit_points: float = 1000,
        enable_bullish: bool = True,
        enable_bearish: bool = True,
        min_body_points: float = 10,
        single_trade_per_signal: bool = True,
        agent_id: str = "engulf01",
        trade_comment: str = "Engulfing",
        use_trailing_stop: bool = False,
        trailing_distance_points: float = 300,
        trailing_step_points: float = 50,
        leverage: int = 1,
        poll_interval_s: float = 1.0,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "engulfing_bot.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbol = symbol
        self.timeframe = timeframe
        self.lot_size = lot_size
        self.stop_loss_points = stop_loss_points
        self.take_profit_points = take_profit_points
        self.enable_bullish = enable_bullish
        self.enable_bearish = enable_bearish
        self.min_body_points = min_body_points
        self.single_trade_per_signal = single_trade_per_signal
        self.agent_id = agent_id
        self.trade_comment = trade_comment
        self.use_trailing_stop = use_trailing_stop
        self.trailing_distance_points = trailing_distance_points
        self.trailing_step_points = trailing_step_points
        self.leverage = leverage
        self.poll_interval_s = poll_interval_s
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def problems(self) -> List[str]:
        """Every reason this configuration cannot be traded with (empty if fine)."""
        found = []
        if self.lot_size <= 0:
            found.append(f"lot_size must be > 0 (got {self.lot_size})")
        for name in ("stop_loss_points", "take_profit_points", "min_body_points",
                     "trailing_distance_points", "trailing_step_points"):
            if getattr(self, name) < 0:
                found.append(f"{name} must be >= 0 (got {getattr(self, name)})")
        if self.use_trailing_stop and self.trailing_distance_points <= 0:
            found.append("trailing_distance_points must be > 0 when the trailing stop is enabled")
        if not self.symbol:
            found.append("symbol is empty")
        try:
            timeframe_minutes(self.timeframe)
        except ValueError as e:
            found.append(str(e))
        if not _AGENT_ID_RE.match(self.agent_id or ""):
            found.append(f"agent_id must be 1-16 chars of [A-Za-z0-9_] (got {self.agent_id!r})")
        if self.leverage < 1:
            found.append(f"leverage must be >= 1 (got {self.leverage})")
        if self.poll_interval_s <= 0:
            found.append(f"poll_interval_s must be > 0 (got {self.poll_interval_s})")
        return found

    def validate(self) -> "Config":
        """Raise InvalidConfiguration if anything is wrong. Returns self."""
        found = self.problems()
        if found:
            raise InvalidConfiguration(found)
        if not self.enable_bullish and not self.enable_bearish:
            logger.warning("Both bullish and bearish detection are disabled; no entries will be taken")
        return self
