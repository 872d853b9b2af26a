from fastapi import HTTPException, Request

from coinbox.services.tracker import PortfolioTracker


def get_tracker(request: Request) -> PortfolioTracker:
    """FastAPI dependency: the tracker created at startup."""
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=503, detail="Tracker not started")
    return tracker
