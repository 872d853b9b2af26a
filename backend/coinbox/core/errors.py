"""
Error taxonomy shared by the portfolio, pricing and FX layers.

Price source and FX failures are absorbed by the aggregator and the FX client;
ValidationError and NotFound are surfaced to callers.
"""


class CoinboxError(Exception):
    """Base class for all application errors."""


class ValidationError(CoinboxError):
    """Bad user input for a holding field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFound(CoinboxError):
    """Operation referenced a holding that does not exist."""

    def __init__(self, holding_id: str):
        super().__init__(f"Holding not found: {holding_id}")
        self.holding_id = holding_id


class PriceSourceError(CoinboxError):
    """A price or FX provider could not produce a value."""

    transient = True


class UnsupportedSymbol(PriceSourceError):
    """No provider mapping exists for the symbol. Never retried."""

    transient = False

    def __init__(self, symbol: str, provider: str = ""):
        suffix = f" by {provider}" if provider else ""
        super().__init__(f"Symbol {symbol!r} is not supported{suffix}")
        self.symbol = symbol
        self.provider = provider


class NetworkError(PriceSourceError):
    """Timeout, connectivity or HTTP status failure."""


class MalformedResponse(PriceSourceError):
    """Unexpected payload shape or a non-finite / negative number."""


class NoRateAvailable(CoinboxError):
    """Every FX provider failed and no cached rate exists."""
