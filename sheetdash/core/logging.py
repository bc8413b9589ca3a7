from __future__ import annotations

import logging

from sheetdash.core.config import get_settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    # Idempotent: repeated app construction (tests) must not stack handlers.
    resolved = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    if not any(getattr(handler, "_sheetdash", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._sheetdash = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(getattr(logging, resolved, logging.INFO))
