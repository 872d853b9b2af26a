from typing import Dict, Optional, Type

import httpx

from coinbox.core.config import COIN_CATALOG, CoinMeta, settings
from coinbox.services.market_data.base import PriceSource
from coinbox.services.market_data.binance_provider import BinancePriceSource
from coinbox.services.market_data.coingecko_provider import CoinGeckoPriceSource

PROVIDERS: Dict[str, Type[PriceSource]] = {
    "coingecko": CoinGeckoPriceSource,
    "binance": BinancePriceSource,
}


def get_price_source(
    name: str = "coingecko",
    catalog: Optional[Dict[str, CoinMeta]] = None,
    timeout_sec: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PriceSource:
    """Factory to get provider instance."""
    provider_class = PROVIDERS.get(name)
    if not provider_class:
        raise ValueError(f"Unknown price provider: {name}")
    return provider_class(
        catalog=COIN_CATALOG if catalog is None else catalog,
        timeout_sec=settings.REQUEST_TIMEOUT_SEC if timeout_sec is None else timeout_sec,
        transport=transport,
    )
