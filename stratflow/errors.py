"""Error taxonomy shared by the compiler, indicator engine and market data."""


class StratflowError(Exception):
    """Base class for all stratflow errors."""


class GraphValidationError(StratflowError):
    """The strategy graph is missing a role, an edge, or has a bad payload."""


class UnsupportedIndicator(StratflowError, ValueError):
    """The requested indicator type has no implementation."""

    def __init__(self, indicator_type: str) -> None:
        super().__init__(f"Unsupported indicator type: {indicator_type!r}")
        self.indicator_type = indicator_type


class InvalidOperator(StratflowError, ValueError):
    """The condition operator has no evaluation rule."""

    def __init__(self, operator: str) -> None:
        super().__init__(f"Invalid or unsupported operator: {operator!r}")
        self.operator = operator


class DataUnavailable(StratflowError):
    """Market data is missing, empty, malformed, or too short."""


class MarketDataError(StratflowError):
    """Provider-level failure talking to the market data source."""


class AuthenticationFailure(MarketDataError):
    """The market data source rejected our credentials."""


class NetworkFailure(MarketDataError):
    """Transport error or retries exhausted against the market data source."""
