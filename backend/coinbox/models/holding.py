import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict


def new_holding_id() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass
class Holding:
    """One portfolio entry. The symbol never changes after creation."""
    id: str
    symbol: str
    amount: float
    manual_unit_price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "amount": self.amount,
            "manual_unit_price": self.manual_unit_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holding":
        # Snapshots written by the mobile app store the manual price as priceRUB
        price = data.get("manual_unit_price", data.get("priceRUB", 0))
        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]).upper(),
            amount=float(data["amount"]),
            manual_unit_price=float(price or 0),
        )
