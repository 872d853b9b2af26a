"""
FX Rate Client.

Tries FX providers in priority order and stops at the first one that returns
a usable rate. Falls back to the last rate persisted in the store. Cached
rates never expire; FxRate.as_of lets callers show how old the value is.
"""

import logging
from typing import Callable, List, Optional

from coinbox.core.clock import utcnow
from coinbox.core.errors import NoRateAvailable, PriceSourceError
from coinbox.core.store import KeyValueStore, StoreKeys
from coinbox.models.quote import FxRate
from coinbox.services.fx.base import FxProvider

logger = logging.getLogger(__name__)


class FxRateService:
    """Produces the current reference -> local conversion rate."""

    def __init__(
        self,
        providers: List[FxProvider],
        store: KeyValueStore,
        base: str = "USD",
        quote: str = "RUB",
        clock: Callable = utcnow,
    ):
        self.providers = list(providers)
        self.store = store
        self.base = base.upper()
        self.quote = quote.upper()
        self.clock = clock
        self._current: Optional[FxRate] = None
        self.from_cache = False

    def current(self) -> Optional[FxRate]:
        """Last known rate, live or cached."""
        return self._current

    def set_providers(self, providers: List[FxProvider]) -> None:
        self.providers = list(providers)

    async def load_cached(self) -> Optional[FxRate]:
        """Read the persisted rate for the configured pair, if any."""
        data = await self.store.get_json(StoreKeys.FX_RATE)
        if not isinstance(data, dict):
            return None
        try:
            cached = FxRate.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cached FX rate: {e}")
            return None
        if (cached.base, cached.quote) != (self.base, self.quote) or cached.rate <= 0:
            return None
        if self._current is None:
            self._current = cached
            self.from_cache = True
        return cached

    async def fetch(self) -> FxRate:
        """
        Fetch a live rate, falling back to the cached one.

        Raises:
            NoRateAvailable: every provider failed and nothing is cached.
        """
        for provider in self.providers:
            try:
                value = await provider.fetch_rate(self.base, self.quote)
            except PriceSourceError as e:
                logger.warning(f"FX provider {provider.name} failed: {e}")
                continue

            rate = FxRate(
                rate=value,
                source=provider.name,
                as_of=self.clock(),
                base=self.base,
                quote=self.quote,
            )
            if not await self.store.set_json(StoreKeys.FX_RATE, rate.to_dict()):
                logger.error("Could not persist FX rate; continuing with in-memory value")
            self._current = rate
            self.from_cache = False
            logger.info(f"FX {self.base}/{self.quote} = {value} from {provider.name}")
            return rate

        cached = self._current if self._current is not None else await self.load_cached()
        if cached is None:
            raise NoRateAvailable(f"No {self.base}/{self.quote} rate from any provider or cache")
        logger.warning(
            f"All FX providers failed, using rate from {cached.source} as of {cached.as_of.isoformat()}"
        )
        self.from_cache = True
        return cached
