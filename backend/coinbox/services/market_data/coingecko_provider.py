import math
from typing import Optional

from coinbox.core.clock import utcnow
from coinbox.core.errors import MalformedResponse, UnsupportedSymbol
from coinbox.core.http import get_json, parse_price
from coinbox.models.preferences import CHANGE_PERIODS
from coinbox.models.quote import PriceQuote
from coinbox.services.market_data.base import PriceSource


class CoinGeckoPriceSource(PriceSource):
    """CoinGecko /coins/markets provider. Also reports 24h/7d/30d changes."""

    name = "coingecko"
    base_url = "https://api.coingecko.com/api/v3"

    def supports(self, symbol: str) -> bool:
        meta = self.catalog.get(symbol.upper())
        return bool(meta and meta.coingecko_id)

    async def fetch_quote(self, symbol: str) -> PriceQuote:
        symbol = symbol.upper()
        if not self.supports(symbol):
            raise UnsupportedSymbol(symbol, self.name)
        coin_id = self.catalog[symbol].coingecko_id

        rows = await get_json(
            f"{self.base_url}/coins/markets",
            params={
                "vs_currency": "usd",
                "ids": coin_id,
                "sparkline": "false",
                "price_change_percentage": ",".join(CHANGE_PERIODS),
            },
            timeout_sec=self.timeout_sec,
            transport=self.transport,
        )
        if not isinstance(rows, list):
            raise MalformedResponse(f"Expected a list of markets for {symbol}")
        row = next((r for r in rows if isinstance(r, dict) and r.get("id") == coin_id), None)
        if row is None:
            raise MalformedResponse(f"No market row for {coin_id}")

        price = parse_price(row.get("current_price"), "current_price")
        return PriceQuote(
            symbol=symbol,
            unit_price_base=price,
            as_of=utcnow(),
            source=self.name,
            changes={
                "24h": _optional_pct(
                    row.get("price_change_percentage_24h_in_currency",
                            row.get("price_change_percentage_24h"))
                ),
                "7d": _optional_pct(row.get("price_change_percentage_7d_in_currency")),
                "30d": _optional_pct(row.get("price_change_percentage_30d_in_currency")),
            },
        )


def _optional_pct(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # Non-finite changes are dropped; the price itself is still usable
    return number if math.isfinite(number) else None
