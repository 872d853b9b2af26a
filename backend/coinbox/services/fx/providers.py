from coinbox.core.errors import UnsupportedSymbol
from coinbox.core.http import dig, get_json, parse_rate
from coinbox.services.fx.base import FxProvider


class OpenErApiProvider(FxProvider):
    """open.er-api.com latest rates."""

    name = "open_er_api"
    base_url = "https://open.er-api.com/v6/latest"

    async def fetch_rate(self, base: str, quote: str) -> float:
        data = await get_json(
            f"{self.base_url}/{base.upper()}",
            timeout_sec=self.timeout_sec,
            transport=self.transport,
        )
        return parse_rate(dig(data, "rates", quote.upper()), f"rates.{quote.upper()}")


class ExchangeRateHostProvider(FxProvider):
    """api.exchangerate.host latest rates."""

    name = "exchangerate_host"
    base_url = "https://api.exchangerate.host/latest"

    async def fetch_rate(self, base: str, quote: str) -> float:
        data = await get_json(
            self.base_url,
            params={"base": base.upper(), "symbols": quote.upper()},
            timeout_sec=self.timeout_sec,
            transport=self.transport,
        )
        return parse_rate(dig(data, "rates", quote.upper()), f"rates.{quote.upper()}")


class CoinGeckoTetherProvider(FxProvider):
    """
    Last-resort rate from CoinGecko's USDT price.

    Treats USDT as USD, so only a USD base is supported.
    """

    name = "coingecko_tether"
    base_url = "https://api.coingecko.com/api/v3/simple/price"

    async def fetch_rate(self, base: str, quote: str) -> float:
        if base.upper() != "USD":
            raise UnsupportedSymbol(base.upper(), self.name)
        vs = quote.lower()
        data = await get_json(
            self.base_url,
            params={"ids": "tether", "vs_currencies": vs},
            timeout_sec=self.timeout_sec,
            transport=self.transport,
        )
        return parse_rate(dig(data, "tether", vs), f"tether.{vs}")
