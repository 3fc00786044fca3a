import logging
from typing import Optional

from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(name: Optional[str] = None) -> logging.Logger:
    """Configure root logging once and return the "app" logger or a child of it.

    Args:
        name: Optional suffix, e.g. "shortener" gives the "app.shortener" logger.
    """
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )

    app_logger = logging.getLogger("app")
    app_logger.setLevel(settings.LOG_LEVEL.upper())

    if name:
        return app_logger.getChild(name)
    return app_logger
