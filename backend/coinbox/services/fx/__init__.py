import logging
from typing import Dict, List, Optional, Sequence, Type

import httpx

from coinbox.core.config import settings
from coinbox.services.fx.base import FxProvider
from coinbox.services.fx.providers import (
    CoinGeckoTetherProvider,
    ExchangeRateHostProvider,
    OpenErApiProvider,
)

logger = logging.getLogger(__name__)

FX_PROVIDERS: Dict[str, Type[FxProvider]] = {
    "open_er_api": OpenErApiProvider,
    "exchangerate_host": ExchangeRateHostProvider,
    "coingecko_tether": CoinGeckoTetherProvider,
}


def build_fx_providers(
    names: Sequence[str],
    timeout_sec: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[FxProvider]:
    """Instantiate providers in the given priority order, skipping unknown names."""
    timeout = settings.REQUEST_TIMEOUT_SEC if timeout_sec is None else timeout_sec
    providers: List[FxProvider] = []
    for name in names:
        provider_class = FX_PROVIDERS.get(name)
        if not provider_class:
            logger.warning(f"Unknown FX provider {name!r}, skipping")
            continue
        providers.append(provider_class(timeout_sec=timeout, transport=transport))
    return providers
