"""
Portfolio tracker: wires the store, portfolio, pricing, FX and scheduler.

The presentation layer talks only to this object. It issues intents (add,
edit, remove, clear, refresh, update preferences) and reads back derived
valuations. No component above this layer performs I/O.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from coinbox.core.clock import AsyncioTimer, Timer, utcnow
from coinbox.core.config import COIN_CATALOG, Settings, settings as default_settings
from coinbox.core.errors import NoRateAvailable
from coinbox.core.store import KeyValueStore, get_store
from coinbox.models.holding import Holding
from coinbox.models.preferences import UserPreferences
from coinbox.models.quote import PriceQuote
from coinbox.services.fx import build_fx_providers
from coinbox.services.fx_rate_service import FxRateService
from coinbox.services.market_data import get_price_source
from coinbox.services.market_data.base import PriceSource
from coinbox.services.portfolio_store import PortfolioStore
from coinbox.services.preferences_service import PreferencesService, default_preferences
from coinbox.services.price_aggregator import PriceAggregator
from coinbox.services.refresh_scheduler import (
    RefreshScheduler,
    RefreshState,
    RefreshTrigger,
)
from coinbox.services.valuation import PortfolioValuation, ValuationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValuationSnapshot:
    """What the presentation layer renders."""
    valuation: PortfolioValuation
    prices_updated: Optional[datetime]
    prices_stale: bool
    fx_as_of: Optional[datetime]
    fx_source: Optional[str]
    fx_from_cache: bool
    refreshing: bool
    display_currency: str
    local_currency: str
    base_currency: str

    @property
    def display_total(self) -> float:
        """Total in the currency the user chose; local until a rate is known."""
        if self.display_currency == "base" and self.valuation.total_base is not None:
            return self.valuation.total_base
        return self.valuation.total

    @property
    def display_currency_code(self) -> str:
        if self.display_currency == "base" and self.valuation.total_base is not None:
            return self.base_currency
        return self.local_currency

    def to_dict(self) -> Dict[str, Any]:
        data = self.valuation.to_dict()
        data.update({
            "prices_updated": self.prices_updated.isoformat() if self.prices_updated else None,
            "prices_stale": self.prices_stale,
            "fx_as_of": self.fx_as_of.isoformat() if self.fx_as_of else None,
            "fx_source": self.fx_source,
            "fx_from_cache": self.fx_from_cache,
            "refreshing": self.refreshing,
            "display_currency": self.display_currency,
            "display_currency_code": self.display_currency_code,
            "display_total": self.display_total,
        })
        return data


class PortfolioTracker:
    """Composition root for one user's portfolio screen."""

    def __init__(
        self,
        store: KeyValueStore,
        price_source: PriceSource,
        fx_service: FxRateService,
        preferences: PreferencesService,
        timer: Optional[Timer] = None,
        watchlist: Optional[List[str]] = None,
        duplicate_policy: str = "append",
        fx_transport: Optional[httpx.AsyncBaseTransport] = None,
        request_timeout_sec: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.portfolio = PortfolioStore(store, duplicate_policy=duplicate_policy)
        self.aggregator = PriceAggregator(price_source)
        self.fx = fx_service
        self.preferences = preferences
        self.watchlist = [s.upper() for s in (watchlist or [])]
        self._fx_transport = fx_transport
        self._timeout_sec = request_timeout_sec
        self.clock = clock
        self._prices: Dict[str, PriceQuote] = {}
        self.prices_updated: Optional[datetime] = None
        self.prices_stale = False
        self.scheduler = RefreshScheduler(
            self.refresh,
            timer or AsyncioTimer(),
            interval_minutes=preferences.current.effective_interval_minutes,
        )

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        store: Optional[KeyValueStore] = None,
        timer: Optional[Timer] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PortfolioTracker":
        """Build a tracker from process settings."""
        config = config or default_settings
        store = store or get_store(config)
        price_source = get_price_source(
            config.PRICE_PROVIDER,
            catalog=COIN_CATALOG,
            timeout_sec=config.REQUEST_TIMEOUT_SEC,
            transport=transport,
        )
        fx_service = FxRateService(
            build_fx_providers(config.FX_PROVIDERS, config.REQUEST_TIMEOUT_SEC, transport),
            store,
            base=config.BASE_CURRENCY,
            quote=config.LOCAL_CURRENCY,
        )
        return cls(
            store=store,
            price_source=price_source,
            fx_service=fx_service,
            preferences=PreferencesService(store, default_preferences(config)),
            timer=timer,
            watchlist=config.WATCHLIST,
            duplicate_policy=config.DUPLICATE_POLICY,
            fx_transport=transport,
            request_timeout_sec=config.REQUEST_TIMEOUT_SEC,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load persisted state, then start the scheduler (initial refresh)."""
        await self.portfolio.load()
        prefs = await self.preferences.load()
        if prefs.fx_providers != self.preferences.defaults.fx_providers:
            self._apply_fx_order(prefs)
        await self.fx.load_cached()
        self.scheduler.interval_minutes = prefs.effective_interval_minutes
        await self.scheduler.start()

    async def stop(self) -> None:
        self.scheduler.stop()
        await self.scheduler.drain()
        await self.store.close()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def tracked_symbols(self) -> List[str]:
        """Watchlist first, then any portfolio symbol not already in it."""
        symbols = list(self.watchlist)
        for symbol in self.portfolio.symbols():
            if symbol not in symbols:
                symbols.append(symbol)
        return symbols

    @property
    def prices(self) -> Mapping[str, PriceQuote]:
        """Read-only view of the last published price map."""
        return MappingProxyType(self._prices)

    async def refresh(self) -> None:
        """Run the FX fetch and the aggregation together; returns when both settle."""
        _, prices = await asyncio.gather(
            self._refresh_fx(),
            self.aggregator.aggregate(self.tracked_symbols()),
        )
        self._publish_prices(prices)

    def _publish_prices(self, prices: Dict[str, PriceQuote]) -> None:
        if self.aggregator.outage and self._prices:
            # Everything failed transiently: keep the last valuation visible
            self.prices_stale = True
            logger.warning(
                f"All quotes failed, keeping prices from "
                f"{self.prices_updated.isoformat() if self.prices_updated else 'previous refresh'}"
            )
            return
        self._prices = prices
        self.prices_stale = False
        self.prices_updated = self.clock()

    async def _refresh_fx(self) -> None:
        try:
            await self.fx.fetch()
        except NoRateAvailable as e:
            logger.warning(f"{e}; valuing with manual prices only")

    async def request_refresh(self) -> bool:
        """Manual "refresh now". Returns False when coalesced into an in-flight refresh."""
        return await self.scheduler.request(RefreshTrigger.MANUAL)

    # ------------------------------------------------------------------
    # Portfolio intents
    # ------------------------------------------------------------------

    async def add_holding(self, symbol: Any, amount: Any, manual_unit_price: Any = 0) -> Holding:
        return await self.portfolio.add(symbol, amount, manual_unit_price)

    async def edit_holding(self, holding_id: str, fields: Dict[str, Any]) -> Holding:
        return await self.portfolio.edit(holding_id, fields)

    async def remove_holding(self, holding_id: str) -> bool:
        return await self.portfolio.remove(holding_id)

    async def clear_holdings(self) -> None:
        await self.portfolio.clear()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def update_preferences(self, changes: Dict[str, Any]) -> UserPreferences:
        """Persist new preferences; cadence or FX order changes trigger a refresh."""
        before = self.preferences.current
        prefs = await self.preferences.update(changes)

        fx_changed = prefs.fx_providers != before.fx_providers
        if fx_changed:
            self._apply_fx_order(prefs)
        if prefs.effective_interval_minutes != before.effective_interval_minutes:
            await self.scheduler.set_interval(prefs.effective_interval_minutes)
        elif fx_changed:
            await self.scheduler.request(RefreshTrigger.SETTINGS)
        return prefs

    def _apply_fx_order(self, prefs: UserPreferences) -> None:
        if not prefs.fx_providers:
            return
        providers = build_fx_providers(
            prefs.fx_providers, timeout_sec=self._timeout_sec, transport=self._fx_transport
        )
        if providers:
            self.fx.set_providers(providers)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def valuation(self) -> ValuationSnapshot:
        engine = ValuationEngine(self.preferences.current.change_period)
        fx_rate = self.fx.current()
        return ValuationSnapshot(
            valuation=engine.value_portfolio(
                self.portfolio.holdings, self.prices, fx_rate
            ),
            prices_updated=self.prices_updated,
            prices_stale=self.prices_stale,
            fx_as_of=fx_rate.as_of if fx_rate else None,
            fx_source=fx_rate.source if fx_rate else None,
            fx_from_cache=self.fx.from_cache,
            refreshing=self.scheduler.state is RefreshState.REFRESHING,
            display_currency=self.preferences.current.display_currency,
            local_currency=self.fx.quote,
            base_currency=self.fx.base,
        )
