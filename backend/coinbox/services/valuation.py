"""
Valuation Engine.

Combines holdings, live quotes and an optional FX rate into per-holding and
total values in local currency. Pure: no I/O, no mutation of its inputs.

Per holding:
- live quote and usable FX rate -> unit price = quote * rate
- otherwise                     -> unit price = manual unit price

Any non-finite intermediate falls back to the manual branch, and a manual
price that is itself unusable counts as zero, so totals are always finite.
"""

import math
from dataclasses import asdict, dataclass
from typing import Iterable, Mapping, Optional, Tuple

from coinbox.models.holding import Holding
from coinbox.models.quote import FxRate, PriceQuote

PRICE_LIVE = "live"
PRICE_MANUAL = "manual"


@dataclass(frozen=True)
class LineValuation:
    """Valuation of a single holding."""
    holding_id: str
    symbol: str
    amount: float
    unit_price: float
    value: float
    price_source: str  # PRICE_LIVE or PRICE_MANUAL
    change_pct: Optional[float] = None


@dataclass(frozen=True)
class PortfolioValuation:
    """Per-holding lines plus the portfolio total, in local currency."""
    lines: Tuple[LineValuation, ...]
    total: float
    fx_rate: Optional[float]

    @property
    def total_base(self) -> Optional[float]:
        """Total expressed in the reference currency, when a rate is known."""
        if self.fx_rate is None:
            return None
        return self.total / self.fx_rate

    def to_dict(self) -> dict:
        return {
            "lines": [asdict(line) for line in self.lines],
            "total": self.total,
            "total_base": self.total_base,
            "fx_rate": self.fx_rate,
        }


def _finite(value: Optional[float]) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def _usable_rate(fx_rate: Optional[FxRate]) -> Optional[float]:
    if fx_rate is None or not _finite(fx_rate.rate) or fx_rate.rate <= 0:
        return None
    return float(fx_rate.rate)


class ValuationEngine:
    """Stateless calculator; safe to re-run on every state change."""

    def __init__(self, change_period: str = "24h"):
        self.change_period = change_period

    def value_holding(
        self,
        holding: Holding,
        quotes: Mapping[str, PriceQuote],
        fx_rate: Optional[FxRate],
    ) -> LineValuation:
        rate = _usable_rate(fx_rate)
        quote = quotes.get(holding.symbol)
        amount = float(holding.amount) if _finite(holding.amount) else 0.0

        if quote is not None and rate is not None and _finite(quote.unit_price_base):
            unit_price = quote.unit_price_base * rate
            value = unit_price * amount
            if math.isfinite(unit_price) and math.isfinite(value):
                change_pct = quote.changes.get(self.change_period)
                return LineValuation(
                    holding_id=holding.id,
                    symbol=holding.symbol,
                    amount=amount,
                    unit_price=unit_price,
                    value=value,
                    price_source=PRICE_LIVE,
                    change_pct=change_pct if _finite(change_pct) else None,
                )

        manual = holding.manual_unit_price
        unit_price = float(manual) if _finite(manual) and manual >= 0 else 0.0
        value = unit_price * amount
        if not math.isfinite(value):
            value = 0.0
        return LineValuation(
            holding_id=holding.id,
            symbol=holding.symbol,
            amount=amount,
            unit_price=unit_price,
            value=value,
            price_source=PRICE_MANUAL,
        )

    def value_portfolio(
        self,
        holdings: Iterable[Holding],
        quotes: Mapping[str, PriceQuote],
        fx_rate: Optional[FxRate],
    ) -> PortfolioValuation:
        lines = tuple(self.value_holding(h, quotes, fx_rate) for h in holdings)
        total = 0.0
        for line in lines:
            total += line.value
        if not math.isfinite(total):
            # Only reachable through float overflow of very large positions
            total = 0.0
        return PortfolioValuation(lines=lines, total=total, fx_rate=_usable_rate(fx_rate))


def value_portfolio(
    holdings: Iterable[Holding],
    quotes: Mapping[str, PriceQuote],
    fx_rate: Optional[FxRate],
    change_period: str = "24h",
) -> PortfolioValuation:
    """Convenience wrapper around ValuationEngine.value_portfolio."""
    return ValuationEngine(change_period).value_portfolio(holdings, quotes, fx_rate)
