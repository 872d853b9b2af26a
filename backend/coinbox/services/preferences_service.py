import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from coinbox.core.config import Settings, settings as default_settings
from coinbox.core.errors import ValidationError
from coinbox.core.store import KeyValueStore, StoreKeys
from coinbox.models.preferences import CHANGE_PERIODS, UserPreferences
from coinbox.services.fx import FX_PROVIDERS

logger = logging.getLogger(__name__)


def default_preferences(config: Optional[Settings] = None) -> UserPreferences:
    config = config or default_settings
    return UserPreferences(
        refresh_interval_minutes=config.REFRESH_INTERVAL_MINUTES,
        auto_refresh=config.REFRESH_INTERVAL_MINUTES > 0,
        fx_providers=list(config.FX_PROVIDERS),
    )


class PreferencesService:
    """Loads and saves user preferences in the key-value store."""

    def __init__(self, store: KeyValueStore, defaults: UserPreferences):
        self.store = store
        self.defaults = defaults
        self.current = replace(defaults, fx_providers=list(defaults.fx_providers))

    async def load(self) -> UserPreferences:
        data = await self.store.get_json(StoreKeys.SETTINGS)
        if isinstance(data, dict):
            self.current = UserPreferences.from_dict(data, self.defaults)
        return self.current

    async def update(self, changes: Dict[str, Any]) -> UserPreferences:
        """
        Apply a partial update and persist it.

        Raises:
            ValidationError: unknown field or out-of-range value.
        """
        allowed = set(self.defaults.to_dict())
        for key in changes:
            if key not in allowed:
                raise ValidationError(key, "is not a known setting")

        updated = replace(self.current, **changes)
        interval = updated.refresh_interval_minutes
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
            raise ValidationError("refresh_interval_minutes", "must not be negative")
        if not isinstance(updated.auto_refresh, bool):
            raise ValidationError("auto_refresh", "must be true or false")
        if updated.change_period not in CHANGE_PERIODS:
            raise ValidationError("change_period", f"must be one of {', '.join(CHANGE_PERIODS)}")
        if updated.display_currency not in ("local", "base"):
            raise ValidationError("display_currency", "must be 'local' or 'base'")
        providers = updated.fx_providers
        if not isinstance(providers, list):
            raise ValidationError("fx_providers", "must be a list of provider names")
        unknown = [
            name for name in providers if not isinstance(name, str) or name not in FX_PROVIDERS
        ]
        if unknown or not providers:
            raise ValidationError("fx_providers", f"unknown or empty provider list: {unknown}")

        self.current = updated
        if not await self.store.set_json(StoreKeys.SETTINGS, updated.to_dict()):
            logger.error("Could not persist user preferences")
        return updated
