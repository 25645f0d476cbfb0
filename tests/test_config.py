"""Tests for stratflow.config — environment variable loading and validation."""

import pytest

from stratflow.config import Config, default_config, load_config

_VARS = [
    "BINANCE_NETWORK",
    "DEFAULT_SYMBOL",
    "CANDLE_INTERVAL",
    "CANDLE_LIMIT",
    "INITIAL_EQUITY",
    "BACKTEST_EXIT_OPERATOR",
    "BACKTEST_EXIT_THRESHOLD",
    "MARKET_CACHE_TTL_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
    "MAX_RETRIES",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Clear stratflow env vars and restore them afterwards.

    setenv first so monkeypatch records the original value even when a
    test loads a .env file that writes os.environ directly.
    """
    for var in _VARS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


@pytest.fixture
def env_path(tmp_path):
    """A non-existent .env so load_dotenv doesn't pick up a real one."""
    return str(tmp_path / "nonexistent.env")


class TestLoadConfig:

    def test_defaults(self, env_path):
        cfg = load_config(env_path)
        assert isinstance(cfg, Config)
        assert cfg == default_config()
        assert cfg.default_symbol == "BTC/USDT"
        assert cfg.candle_interval == "1h"
        assert cfg.candle_limit == 100
        assert cfg.initial_equity == 10_000.0
        assert cfg.backtest_exit_operator == "gt"
        assert cfg.backtest_exit_threshold == 70.0

    def test_overrides(self, monkeypatch, env_path):
        monkeypatch.setenv("DEFAULT_SYMBOL", "ETH/USDT")
        monkeypatch.setenv("CANDLE_LIMIT", "250")
        monkeypatch.setenv("BACKTEST_EXIT_OPERATOR", "LT")
        monkeypatch.setenv("BACKTEST_EXIT_THRESHOLD", "45.5")
        monkeypatch.setenv("MAX_RETRIES", "5")
        cfg = load_config(env_path)
        assert cfg.default_symbol == "ETH/USDT"
        assert cfg.candle_limit == 250
        assert cfg.backtest_exit_operator == "lt"
        assert cfg.backtest_exit_threshold == 45.5
        assert cfg.max_retries == 5

    def test_reads_env_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("DEFAULT_SYMBOL=SOL/USDT\nINITIAL_EQUITY=2500\n")
        cfg = load_config(str(path))
        assert cfg.default_symbol == "SOL/USDT"
        assert cfg.initial_equity == 2500.0

    @pytest.mark.parametrize(
        "var, value",
        [
            ("CANDLE_LIMIT", "many"),
            ("CANDLE_LIMIT", "0"),
            ("INITIAL_EQUITY", "-5"),
            ("BACKTEST_EXIT_THRESHOLD", "high"),
            ("BACKTEST_EXIT_OPERATOR", "crossover"),
            ("BINANCE_NETWORK", "devnet"),
        ],
    )
    def test_invalid_value_names_variable(self, monkeypatch, env_path, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ValueError, match=var):
            load_config(env_path)

    def test_network_switching_mainnet(self, env_path):
        cfg = load_config(env_path)
        assert cfg.market_data_base_url == "https://api.binance.com"

    def test_network_switching_testnet(self, monkeypatch, env_path):
        monkeypatch.setenv("BINANCE_NETWORK", "testnet")
        cfg = load_config(env_path)
        assert cfg.market_data_base_url == "https://testnet.binance.vision"
