from abc import ABC, abstractmethod
from typing import Optional

import httpx


class FxProvider(ABC):
    """Abstract base class for FX rate providers."""

    name: str = ""

    def __init__(
        self,
        timeout_sec: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_sec = timeout_sec
        self.transport = transport

    @abstractmethod
    async def fetch_rate(self, base: str, quote: str) -> float:
        """
        Fetch the base -> quote multiplier.
        Returns a finite positive number or raises a PriceSourceError.
        """
        pass
