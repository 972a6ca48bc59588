"""Logging setup shared by the CLI and the HTTP layer."""

from __future__ import annotations

import logging
from typing import Optional

from linkguard.config import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    ``level`` falls back to ``settings.log_level``.  Calling this again only
    adjusts the level, so entry points can call it unconditionally.
    """
    resolved = (level or settings.log_level).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=_FORMAT)
    root.setLevel(resolved)
    # httpx logs every request at INFO; keep it quiet unless debugging.
    if resolved != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
