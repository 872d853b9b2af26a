"""
User preferences API Router.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from coinbox.api.deps import get_tracker
from coinbox.core.errors import ValidationError
from coinbox.services.tracker import PortfolioTracker

router = APIRouter()


class PreferencesSchema(BaseModel):
    refresh_interval_minutes: float
    auto_refresh: bool
    fx_providers: list[str]
    display_currency: Literal["local", "base"]
    change_period: str


class PreferencesUpdate(BaseModel):
    refresh_interval_minutes: Optional[float] = None
    auto_refresh: Optional[bool] = None
    fx_providers: Optional[list[str]] = None
    display_currency: Optional[Literal["local", "base"]] = None
    change_period: Optional[str] = None


@router.get("", response_model=PreferencesSchema)
async def get_preferences(tracker: PortfolioTracker = Depends(get_tracker)):
    return tracker.preferences.current.to_dict()


@router.put("", response_model=PreferencesSchema)
async def update_preferences(
    body: PreferencesUpdate,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    try:
        prefs = await tracker.update_preferences(body.model_dump(exclude_none=True))
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail={"field": exc.field, "message": exc.message}
        ) from exc
    return prefs.to_dict()
