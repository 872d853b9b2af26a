"""
Portfolio Store.

Owns the ordered holdings list. Every mutation re-serializes the whole list
and writes it through to the key-value store. Persistence is best-effort: a
failed write is logged and the in-memory change stands.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from coinbox.core.errors import NotFound, ValidationError
from coinbox.core.store import KeyValueStore, StoreKeys
from coinbox.models.holding import Holding, new_holding_id

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["append", "merge"]


def _validate_symbol(symbol: Any) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError("symbol", "must be a non-empty ticker")
    return symbol.strip().upper()


def _validate_number(field: str, value: Any, allow_zero: bool) -> float:
    if isinstance(value, bool):
        raise ValidationError(field, "must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(field, "must be a number") from exc
    if not math.isfinite(number):
        raise ValidationError(field, "must be a finite number")
    if allow_zero and number < 0:
        raise ValidationError(field, "must not be negative")
    if not allow_zero and number <= 0:
        raise ValidationError(field, "must be greater than zero")
    return number


class PortfolioStore:
    """In-memory holdings list with write-through persistence."""

    def __init__(
        self,
        store: KeyValueStore,
        duplicate_policy: DuplicatePolicy = "append",
        id_factory: Callable[[], str] = new_holding_id,
    ):
        self.store = store
        self.duplicate_policy = duplicate_policy
        self.id_factory = id_factory
        self._holdings: List[Holding] = []

    @property
    def holdings(self) -> Tuple[Holding, ...]:
        """Snapshot of the list in display (insertion) order."""
        return tuple(self._holdings)

    def symbols(self) -> List[str]:
        seen: List[str] = []
        for holding in self._holdings:
            if holding.symbol not in seen:
                seen.append(holding.symbol)
        return seen

    def get(self, holding_id: str) -> Optional[Holding]:
        return next((h for h in self._holdings if h.id == holding_id), None)

    async def load(self) -> int:
        """Load the snapshot from the store. Missing or corrupt data yields an empty list."""
        data = await self.store.get_json(StoreKeys.PORTFOLIO)
        holdings: List[Holding] = []
        if isinstance(data, list):
            for row in data:
                try:
                    holding = Holding.from_dict(row)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping unreadable holding {row!r}: {e}")
                    continue
                holdings.append(holding)
        elif data is not None:
            logger.warning("Stored portfolio is not a list, starting empty")
        self._holdings = holdings
        logger.info(f"Loaded {len(holdings)} holdings")
        return len(holdings)

    async def add(self, symbol: Any, amount: Any, manual_unit_price: Any = 0) -> Holding:
        """
        Add a holding.

        Raises:
            ValidationError: empty symbol, non-positive amount or negative price.
        """
        symbol = _validate_symbol(symbol)
        amount = _validate_number("amount", amount, allow_zero=False)
        price = _validate_number("manual_unit_price", manual_unit_price, allow_zero=True)

        if self.duplicate_policy == "merge":
            existing = next((h for h in self._holdings if h.symbol == symbol), None)
            if existing is not None:
                existing.amount += amount
                if price > 0:
                    existing.manual_unit_price = price
                await self._persist()
                return existing

        holding = Holding(
            id=self.id_factory(),
            symbol=symbol,
            amount=amount,
            manual_unit_price=price,
        )
        self._holdings.append(holding)
        await self._persist()
        return holding

    async def edit(self, holding_id: str, fields: Dict[str, Any]) -> Holding:
        """
        Update amount and/or manual price in place.

        Raises:
            NotFound: no holding with this id.
            ValidationError: bad value, or an attempt to change the symbol.
        """
        holding = self.get(holding_id)
        if holding is None:
            raise NotFound(holding_id)

        unknown = set(fields) - {"amount", "manual_unit_price"}
        if unknown:
            field = "symbol" if "symbol" in unknown else sorted(unknown)[0]
            raise ValidationError(field, "cannot be edited")

        # Validate everything before touching the holding
        updates: Dict[str, float] = {}
        if "amount" in fields:
            updates["amount"] = _validate_number("amount", fields["amount"], allow_zero=False)
        if "manual_unit_price" in fields:
            updates["manual_unit_price"] = _validate_number(
                "manual_unit_price", fields["manual_unit_price"], allow_zero=True
            )

        for key, value in updates.items():
            setattr(holding, key, value)
        await self._persist()
        return holding

    async def remove(self, holding_id: str) -> bool:
        """Remove a holding. Unknown ids are a no-op; returns whether anything was removed."""
        remaining = [h for h in self._holdings if h.id != holding_id]
        if len(remaining) == len(self._holdings):
            return False
        self._holdings = remaining
        await self._persist()
        return True

    async def clear(self) -> None:
        """Drop every holding. Callers must have confirmed this with the user."""
        self._holdings = []
        await self._persist()

    async def _persist(self) -> None:
        payload = [h.to_dict() for h in self._holdings]
        try:
            ok = await self.store.set_json(StoreKeys.PORTFOLIO, payload)
        except Exception as e:
            logger.error(f"Portfolio write failed: {e}")
            return
        if not ok:
            logger.error("Portfolio write was not accepted by the store")
