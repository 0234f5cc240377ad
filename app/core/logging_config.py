# app/core/logging_config.py
from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_CONFIGURED = False


def setup_logging(level: Optional[str] = None) -> None:
    """
    Root logger on stdout, one line per record.
    Safe to call more than once (uvicorn reload, tests).
    """
    global _CONFIGURED
    from app.core.settings import settings

    lvl_name = (level or settings.LOG_LEVEL or "INFO").upper()
    lvl = getattr(logging, lvl_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _CONFIGURED = True
