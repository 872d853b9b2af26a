"""
Logging configuration for the application.

One stdout handler on the root logger. The app's own loggers live under
`coinbox.*`; the price aggregator gets its own level because it logs once
per symbol on every refresh.
"""

import logging
import sys
from typing import Optional

from coinbox.core.config import Settings, settings as default_settings

QUOTE_LOGGERS = (
    "coinbox.services.price_aggregator",
    "coinbox.services.market_data",
)


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: Optional[Settings] = None) -> None:
    """Configure application logging."""
    config = config or default_settings

    logging.basicConfig(
        level=_level(config.LOG_LEVEL),
        format=f"%(asctime)s - {config.APP_NAME} - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("coinbox").setLevel(_level(config.LOG_LEVEL))
    for name in QUOTE_LOGGERS:
        logging.getLogger(name).setLevel(_level(config.QUOTE_LOG_LEVEL))

    # Keep request-per-quote chatter from httpx out of the app log
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
