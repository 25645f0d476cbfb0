"""stratflow — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

_NETWORK_URLS = {
    "mainnet": "https://api.binance.com",
    "testnet": "https://testnet.binance.vision",
}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    binance_network: str  # "mainnet" or "testnet"
    default_symbol: str
    candle_interval: str
    candle_limit: int
    initial_equity: float
    backtest_exit_operator: str
    backtest_exit_threshold: float
    market_cache_ttl_seconds: float
    request_timeout_seconds: float
    max_retries: int
    log_level: str

    @property
    def market_data_base_url(self) -> str:
        """Return the Binance REST base URL for the configured network."""
        return _NETWORK_URLS.get(self.binance_network, _NETWORK_URLS["mainnet"])


def default_config() -> Config:
    """Configuration with every variable at its default value."""
    return Config(
        binance_network="mainnet",
        default_symbol="BTC/USDT",
        candle_interval="1h",
        candle_limit=100,
        initial_equity=10_000.0,
        backtest_exit_operator="gt",
        backtest_exit_threshold=70.0,
        market_cache_ttl_seconds=30.0,
        request_timeout_seconds=10.0,
        max_retries=3,
        log_level="INFO",
    )


def _number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Environment variable {name} must be numeric, got {raw!r}"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable
    when a value cannot be used.
    """
    load_dotenv(dotenv_path=env_path)

    network = os.environ.get("BINANCE_NETWORK", "mainnet").lower()
    if network not in _NETWORK_URLS:
        raise ValueError(
            f"BINANCE_NETWORK must be one of {', '.join(_NETWORK_URLS)}, "
            f"got {network!r}"
        )
    exit_operator = os.environ.get("BACKTEST_EXIT_OPERATOR", "gt").lower()
    if exit_operator not in ("gt", "lt"):
        raise ValueError(
            f"BACKTEST_EXIT_OPERATOR must be 'gt' or 'lt', got {exit_operator!r}"
        )

    candle_limit = _number("CANDLE_LIMIT", "100", int)
    if candle_limit <= 0:
        raise ValueError(f"CANDLE_LIMIT must be positive, got {candle_limit}")
    initial_equity = _number("INITIAL_EQUITY", "10000", float)
    if initial_equity <= 0:
        raise ValueError(f"INITIAL_EQUITY must be positive, got {initial_equity}")

    return Config(
        binance_network=network,
        default_symbol=os.environ.get("DEFAULT_SYMBOL", "BTC/USDT"),
        candle_interval=os.environ.get("CANDLE_INTERVAL", "1h"),
        candle_limit=candle_limit,
        initial_equity=initial_equity,
        backtest_exit_operator=exit_operator,
        backtest_exit_threshold=_number("BACKTEST_EXIT_THRESHOLD", "70", float),
        market_cache_ttl_seconds=_number("MARKET_CACHE_TTL_SECONDS", "30", float),
        request_timeout_seconds=_number("REQUEST_TIMEOUT_SECONDS", "10", float),
        max_retries=_number("MAX_RETRIES", "3", int),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
