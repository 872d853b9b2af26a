import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal

CHANGE_PERIODS = ("24h", "7d", "30d")

DisplayCurrency = Literal["local", "base"]


@dataclass
class UserPreferences:
    """Per-user settings persisted in the store."""
    refresh_interval_minutes: float = 5.0
    auto_refresh: bool = True
    fx_providers: List[str] = field(default_factory=list)
    display_currency: DisplayCurrency = "local"
    change_period: str = "24h"

    @property
    def effective_interval_minutes(self) -> float:
        """Cadence the scheduler should use; 0 disables the timer."""
        if not self.auto_refresh:
            return 0.0
        return max(self.refresh_interval_minutes, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: "UserPreferences") -> "UserPreferences":
        """Build from stored data, falling back to defaults for missing or bad fields."""
        merged = defaults.to_dict()
        for key in merged:
            if key in data and data[key] is not None:
                merged[key] = data[key]
        prefs = cls(**merged)
        if prefs.change_period not in CHANGE_PERIODS:
            prefs.change_period = defaults.change_period
        if prefs.display_currency not in ("local", "base"):
            prefs.display_currency = defaults.display_currency
        interval = prefs.refresh_interval_minutes
        if (
            isinstance(interval, bool)
            or not isinstance(interval, (int, float))
            or not math.isfinite(interval)
            or interval < 0
        ):
            prefs.refresh_interval_minutes = defaults.refresh_interval_minutes
        else:
            prefs.refresh_interval_minutes = float(interval)
        if not isinstance(prefs.auto_refresh, bool):
            prefs.auto_refresh = defaults.auto_refresh
        providers = prefs.fx_providers
        if (
            not isinstance(providers, list)
            or not providers
            or not all(isinstance(name, str) for name in providers)
        ):
            prefs.fx_providers = list(defaults.fx_providers)
        return prefs
