from coinbox.models.holding import Holding, new_holding_id
from coinbox.models.preferences import CHANGE_PERIODS, UserPreferences
from coinbox.models.quote import FxRate, PriceQuote

__all__ = [
    "Holding",
    "new_holding_id",
    "PriceQuote",
    "FxRate",
    "UserPreferences",
    "CHANGE_PERIODS",
]
