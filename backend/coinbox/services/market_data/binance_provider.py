from coinbox.core.clock import utcnow
from coinbox.core.errors import UnsupportedSymbol
from coinbox.core.http import dig, get_json, parse_price
from coinbox.models.quote import PriceQuote
from coinbox.services.market_data.base import PriceSource


class BinancePriceSource(PriceSource):
    """Binance spot ticker provider. USDT pairs stand in for USD."""

    name = "binance"
    base_url = "https://api.binance.com/api/v3"

    def supports(self, symbol: str) -> bool:
        meta = self.catalog.get(symbol.upper())
        return bool(meta and meta.binance_pair)

    async def fetch_quote(self, symbol: str) -> PriceQuote:
        symbol = symbol.upper()
        if not self.supports(symbol):
            raise UnsupportedSymbol(symbol, self.name)
        pair = self.catalog[symbol].binance_pair

        data = await get_json(
            f"{self.base_url}/ticker/price",
            params={"symbol": pair},
            timeout_sec=self.timeout_sec,
            transport=self.transport,
        )
        # Binance returns the price as a decimal string
        price = parse_price(dig(data, "price"), "price")
        return PriceQuote(symbol=symbol, unit_price_base=price, as_of=utcnow(), source=self.name)
