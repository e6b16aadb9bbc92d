"""Unit tests for core.config."""

import pytest
from engulfing_bot.core.config import Config, load_config
from engulfing_bot.core.errors import InvalidConfiguration

ENV_KEYS = [
    "USE_TESTNET", "SYMBOL", "TIMEFRAME", "LOT_SIZE", "STOP_LOSS_POINTS", "TAKE_PROFIT_POINTS",
    "ENABLE_BULLISH", "ENABLE_BEARISH", "AGENT_ID", "TRADE_COMMENT", "SINGLE_TRADE_PER_SIGNAL",
    "MIN_BODY_POINTS", "USE_TRAILING_STOP", "TRAILING_DISTANCE_POINTS", "TRAILING_STEP_POINTS",
    "POLL_INTERVAL_S", "LEVERAGE", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID",
    "BINANCE_API_KEY", "BINANCE_API_SECRET", "BINANCE_TESTNET_API_KEY", "BINANCE_TESTNET_API_SECRET",
    "BINANCE_MAINNET_API_KEY", "BINANCE_MAINNET_API_SECRET",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_are_valid():
    assert Config().validate().problems() == []


def test_negative_values_rejected():
    cfg = Config(lot_size=-1, stop_loss_points=-5, trailing_step_points=-1)
    with pytest.raises(InvalidConfiguration) as exc:
        cfg.validate()
    text = str(exc.value)
    assert "lot_size" in text
    assert "stop_loss_points" in text
    assert "trailing_step_points" in text
    assert len(exc.value.problems) == 3


def test_trailing_needs_distance():
    with pytest.raises(InvalidConfiguration):
        Config(use_trailing_stop=True, trailing_distance_points=0).validate()
    # distance 0 is fine while the trailing stop is off
    Config(use_trailing_stop=False, trailing_distance_points=0).validate()


def test_bad_timeframe_and_agent_id():
    problems = Config(timeframe="7x", agent_id="has space").problems()
    assert any("timeframe" in p for p in problems)
    assert any("agent_id" in p for p in problems)


def test_zero_stop_and_target_allowed():
    Config(stop_loss_points=0, take_profit_points=0).validate()


def test_load_config_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "strategy:\n"
        "  symbol: ethusdt\n"
        "  timeframe: 15m\n"
        "  stop_loss_points: 200\n"
        "  enable_bearish: false\n"
        "trailing:\n"
        "  enabled: true\n"
        "  distance_points: 150\n"
        "  step_points: 25\n"
        "execution:\n"
        "  lot_size: 0.05\n"
        "  agent_id: eth_engulf\n",
        encoding="utf-8",
    )
    cfg = load_config(path, tmp_path)
    assert cfg.symbol == "ETHUSDT"
    assert cfg.timeframe == "15m"
    assert cfg.stop_loss_points == 200
    assert cfg.enable_bearish is False
    assert cfg.enable_bullish is True
    assert cfg.use_trailing_stop is True
    assert cfg.trailing_distance_points == 150
    assert cfg.trailing_step_points == 25
    assert cfg.lot_size == 0.05
    assert cfg.agent_id == "eth_engulf"


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("strategy:\n  min_body_points: 5\n", encoding="utf-8")
    monkeypatch.setenv("MIN_BODY_POINTS", "25")
    monkeypatch.setenv("SINGLE_TRADE_PER_SIGNAL", "false")
    monkeypatch.setenv("BINANCE_TESTNET_API_KEY", "k")
    monkeypatch.setenv("BINANCE_TESTNET_API_SECRET", "s")
    cfg = load_config(path, tmp_path)
    assert cfg.min_body_points == 25
    assert cfg.single_trade_per_signal is False
    assert cfg.binance_api_key == "k"
    assert cfg.binance_api_secret == "s"


def test_load_config_rejects_invalid(tmp_path, monkeypatch):
    monkeypatch.setenv("LOT_SIZE", "0")
    with pytest.raises(InvalidConfiguration):
        load_config(tmp_path / "missing.yaml", tmp_path)
