from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from coinbox.core.config import CoinMeta
from coinbox.models.quote import PriceQuote


class PriceSource(ABC):
    """Abstract base class for live price providers."""

    name: str = ""

    def __init__(
        self,
        catalog: Dict[str, CoinMeta],
        timeout_sec: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.catalog = catalog
        self.timeout_sec = timeout_sec
        self.transport = transport

    @abstractmethod
    def supports(self, symbol: str) -> bool:
        """Whether this provider has an identifier for the symbol."""
        pass

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> PriceQuote:
        """
        Fetch the spot price for one symbol in the reference currency.

        Raises UnsupportedSymbol before any network call when the symbol has
        no mapping, NetworkError on transport failure, MalformedResponse on a
        bad payload.
        """
        pass
