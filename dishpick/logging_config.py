from __future__ import annotations

import logging
import os

LOG_LEVEL = os.environ.get("DISHPICK_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a single stream handler to the package logger."""
    logger = logging.getLogger("dishpick")
    if not logger.handlers:
        logger.setLevel(level)
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger
