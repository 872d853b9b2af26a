"""
Portfolio API Router.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from coinbox.api.deps import get_tracker
from coinbox.core.errors import NotFound, ValidationError
from coinbox.services.tracker import PortfolioTracker

router = APIRouter()

# ---------- Pydantic Schemas ----------

class HoldingSchema(BaseModel):
    id: str
    symbol: str
    amount: float
    manual_unit_price: float

    class Config:
        from_attributes = True


class HoldingCreate(BaseModel):
    symbol: str
    amount: float
    manual_unit_price: float = 0.0


class HoldingUpdate(BaseModel):
    amount: Optional[float] = None
    manual_unit_price: Optional[float] = None


class RefreshResult(BaseModel):
    started: bool
    state: str


def _validation_error(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"field": exc.field, "message": exc.message})


# ---------- Endpoints ----------

@router.get("/holdings", response_model=list[HoldingSchema])
async def list_holdings(tracker: PortfolioTracker = Depends(get_tracker)):
    """List holdings in display order."""
    return list(tracker.portfolio.holdings)


@router.post("/holdings", response_model=HoldingSchema, status_code=201)
async def add_holding(body: HoldingCreate, tracker: PortfolioTracker = Depends(get_tracker)):
    try:
        return await tracker.add_holding(body.symbol, body.amount, body.manual_unit_price)
    except ValidationError as exc:
        raise _validation_error(exc) from exc


@router.patch("/holdings/{holding_id}", response_model=HoldingSchema)
async def edit_holding(
    holding_id: str,
    body: HoldingUpdate,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    fields = body.model_dump(exclude_none=True)
    try:
        return await tracker.edit_holding(holding_id, fields)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValidationError as exc:
        raise _validation_error(exc) from exc


@router.delete("/holdings/{holding_id}", status_code=204)
async def remove_holding(holding_id: str, tracker: PortfolioTracker = Depends(get_tracker)):
    """Remove a holding; unknown ids are not an error."""
    await tracker.remove_holding(holding_id)
    return Response(status_code=204)


@router.delete("/holdings", status_code=204)
async def clear_holdings(confirm: bool = False, tracker: PortfolioTracker = Depends(get_tracker)):
    """Remove every holding. Requires ?confirm=true."""
    if not confirm:
        raise HTTPException(status_code=409, detail="Clearing the portfolio requires confirm=true")
    await tracker.clear_holdings()
    return Response(status_code=204)


@router.get("/valuation")
async def get_valuation(tracker: PortfolioTracker = Depends(get_tracker)):
    """Current per-holding and total valuation."""
    return tracker.valuation().to_dict()


@router.post("/refresh", response_model=RefreshResult)
async def refresh_now(tracker: PortfolioTracker = Depends(get_tracker)):
    """Manual refresh; started=false means it joined one already in flight."""
    started = await tracker.request_refresh()
    return RefreshResult(started=started, state=tracker.scheduler.state.value)
