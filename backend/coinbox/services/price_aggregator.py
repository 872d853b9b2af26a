"""
Price Aggregator.

Fans out one price source call per tracked symbol, waits for every call to
settle, and returns the successful quotes as a new map. Failed symbols are
simply absent from the result.

`outage` records whether the last run got nothing back because of transient
failures (provider down, no network), as opposed to having nothing to price.
"""

import asyncio
import logging
from typing import Dict, Iterable, List

from coinbox.core.errors import PriceSourceError, UnsupportedSymbol
from coinbox.models.quote import PriceQuote
from coinbox.services.market_data.base import PriceSource

logger = logging.getLogger(__name__)


class PriceAggregator:
    """Concurrent quote fetcher over a single price source."""

    def __init__(self, source: PriceSource, max_concurrency: int = 8):
        self.source = source
        self.max_concurrency = max(max_concurrency, 1)
        self.last_failures: Dict[str, str] = {}
        self.outage = False

    async def aggregate(self, symbols: Iterable[str]) -> Dict[str, PriceQuote]:
        """
        Fetch quotes for every symbol and return them as a fresh map.

        Never raises for provider failures; an empty symbol set yields an empty map.
        """
        unique: List[str] = []
        for symbol in symbols:
            symbol = symbol.strip().upper()
            if symbol and symbol not in unique:
                unique.append(symbol)

        gate = asyncio.Semaphore(self.max_concurrency)

        async def fetch_symbol(symbol: str) -> PriceQuote:
            async with gate:
                return await self.source.fetch_quote(symbol)

        results = await asyncio.gather(
            *[fetch_symbol(symbol) for symbol in unique], return_exceptions=True
        )

        prices: Dict[str, PriceQuote] = {}
        failures: Dict[str, str] = {}
        transient_failures = 0
        for symbol, result in zip(unique, results):
            if isinstance(result, PriceQuote):
                prices[symbol] = result
            elif isinstance(result, UnsupportedSymbol):
                failures[symbol] = str(result)
                logger.debug(f"{symbol} has no {self.source.name} mapping")
            elif isinstance(result, PriceSourceError):
                failures[symbol] = str(result)
                transient_failures += 1
                logger.warning(f"Quote for {symbol} failed: {result}")
            elif isinstance(result, Exception):
                failures[symbol] = repr(result)
                transient_failures += 1
                logger.error(f"Unexpected error fetching {symbol}: {result!r}")
            else:
                # CancelledError and friends must not be swallowed
                raise result

        self.last_failures = failures
        self.outage = not prices and transient_failures > 0
        logger.info(f"Aggregated {len(prices)}/{len(unique)} quotes from {self.source.name}")
        return prices
