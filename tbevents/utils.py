"""
Utility helpers: logging config.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "tbevents"
_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def init_logging(
    level: Optional[str] = None,
    log_file: Union[str, os.PathLike, None] = None,
) -> logging.Logger:
    """
    Configure the package logger with a console handler and, optionally, a
    rotating file handler. The level defaults to $TBEVENTS_LOG_LEVEL, else
    WARNING. Calling it again replaces the handlers it installed before.
    """
    level_name = (level or os.getenv("TBEVENTS_LOG_LEVEL", "WARNING")).upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False  # avoid duplicate logs if root has handlers

    for handler in [h for h in logger.handlers if getattr(h, "_tbevents", False)]:
        logger.removeHandler(handler)
        handler.close()

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(logging.Formatter(_FORMAT))
    ch._tbevents = True  # type: ignore[attr-defined]
    logger.addHandler(ch)

    # File (rotating)
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=5)
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(_FORMAT))
        fh._tbevents = True  # type: ignore[attr-defined]
        logger.addHandler(fh)

    return logger
