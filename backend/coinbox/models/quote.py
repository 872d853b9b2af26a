from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PriceQuote:
    """Live unit price for a symbol in the reference currency. Never persisted."""
    symbol: str
    unit_price_base: float
    as_of: datetime
    source: str = ""
    # Percentage change keyed by period ("24h", "7d", "30d") when the provider reports it
    changes: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class FxRate:
    """Reference-currency to local-currency multiplier."""
    rate: float
    source: str
    as_of: datetime
    base: str = "USD"
    quote: str = "RUB"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "rate": self.rate,
            "source": self.source,
            "as_of": self.as_of.isoformat(),
            "base": self.base,
            "quote": self.quote,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FxRate":
        return cls(
            rate=float(data["rate"]),
            source=str(data.get("source", "")),
            as_of=datetime.fromisoformat(data["as_of"]),
            base=str(data.get("base", "USD")),
            quote=str(data.get("quote", "RUB")),
        )
