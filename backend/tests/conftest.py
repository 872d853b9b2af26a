"""Shared fixtures: in-memory store, scripted price/FX providers, manual timer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

import pytest

from coinbox.core.clock import ManualTimer
from coinbox.core.config import COIN_CATALOG
from coinbox.core.errors import NetworkError, UnsupportedSymbol
from coinbox.core.store import MemoryStore
from coinbox.models.preferences import UserPreferences
from coinbox.models.quote import PriceQuote
from coinbox.services.fx.base import FxProvider
from coinbox.services.fx_rate_service import FxRateService
from coinbox.services.market_data.base import PriceSource
from coinbox.services.preferences_service import PreferencesService
from coinbox.services.tracker import PortfolioTracker

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

Outcome = Union[float, Exception]


class ScriptedPriceSource(PriceSource):
    """Returns configured prices; symbols mapped to an exception raise it."""

    name = "scripted"

    def __init__(self, outcomes: Optional[Dict[str, Outcome]] = None, delay: float = 0.0):
        super().__init__(catalog=COIN_CATALOG)
        self.outcomes: Dict[str, Outcome] = dict(outcomes or {})
        self.delay = delay
        self.calls: List[str] = []

    def supports(self, symbol: str) -> bool:
        return symbol.upper() in self.outcomes

    async def fetch_quote(self, symbol: str) -> PriceQuote:
        self.calls.append(symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if symbol not in self.outcomes:
            raise UnsupportedSymbol(symbol, self.name)
        outcome = self.outcomes[symbol]
        if isinstance(outcome, Exception):
            raise outcome
        return PriceQuote(
            symbol=symbol,
            unit_price_base=outcome,
            as_of=FIXED_NOW,
            source=self.name,
            changes={"24h": 1.5, "7d": -2.0, "30d": None},
        )


class ScriptedFxProvider(FxProvider):
    def __init__(self, name: str, outcome: Outcome):
        super().__init__()
        self.name = name
        self.outcome = outcome
        self.calls = 0

    async def fetch_rate(self, base: str, quote: str) -> float:
        self.calls += 1
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(prefix="TEST_")


@pytest.fixture
def timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def price_source() -> ScriptedPriceSource:
    return ScriptedPriceSource({"BTC": 50000.0, "ETH": 3000.0})


@pytest.fixture
def make_tracker(store, timer):
    def _make(
        price_source: Optional[PriceSource] = None,
        fx_providers: Optional[List[FxProvider]] = None,
        watchlist: Optional[List[str]] = None,
        interval_minutes: float = 5.0,
        duplicate_policy: str = "append",
    ) -> PortfolioTracker:
        fx_service = FxRateService(
            fx_providers if fx_providers is not None else [ScriptedFxProvider("primary", 90.0)],
            store,
            base="USD",
            quote="RUB",
            clock=lambda: FIXED_NOW,
        )
        defaults = UserPreferences(
            refresh_interval_minutes=interval_minutes,
            auto_refresh=interval_minutes > 0,
            fx_providers=["open_er_api", "exchangerate_host", "coingecko_tether"],
        )
        return PortfolioTracker(
            store=store,
            price_source=price_source or ScriptedPriceSource({"BTC": 50000.0, "ETH": 3000.0}),
            fx_service=fx_service,
            preferences=PreferencesService(store, defaults),
            timer=timer,
            watchlist=watchlist if watchlist is not None else [],
            duplicate_policy=duplicate_policy,
        )

    return _make


def network_down(symbol: str = "") -> NetworkError:
    return NetworkError(f"connection refused {symbol}".strip())
