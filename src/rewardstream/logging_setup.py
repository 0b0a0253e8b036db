"""Logging configuration for the rewardstream package loggers."""

import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the `rewardstream` logger with a single stream handler.

    - Level from the argument, else REWARDSTREAM_LOG_LEVEL, else INFO.
    - Safe to call multiple times.
    """
    level_name = (level or os.environ.get("REWARDSTREAM_LOG_LEVEL") or "INFO").strip().upper()
    resolved = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("rewardstream")
    if getattr(logger, "_rewardstream_configured", False):
        logger.setLevel(resolved)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger.handlers = [handler]
    logger.setLevel(resolved)
    logger.propagate = False
    setattr(logger, "_rewardstream_configured", True)
