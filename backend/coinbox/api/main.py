"""
FastAPI application entry point.

Intent surface for the CoinBox portfolio screen.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinbox.core.config import settings
from coinbox.core.logging import setup_logging
from coinbox.services.tracker import PortfolioTracker

# Setup logging
setup_logging()

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Crypto portfolio tracker - live prices, FX conversion, manual fallbacks",
    debug=settings.DEBUG,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup() -> None:
    """Load persisted state and start the refresh scheduler."""
    tracker = PortfolioTracker.from_settings(settings)
    await tracker.start()
    app.state.tracker = tracker


@app.on_event("shutdown")
async def shutdown() -> None:
    """Stop the scheduler and close the store."""
    tracker = getattr(app.state, "tracker", None)
    if tracker is not None:
        await tracker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


from coinbox.api.portfolio import router as portfolio_router
from coinbox.api.settings import router as settings_router

app.include_router(portfolio_router, prefix="/api/v1/portfolio", tags=["portfolio"])
app.include_router(settings_router, prefix="/api/v1/settings", tags=["settings"])
