from __future__ import annotations

import logging

from notifyagg.core.config import get_settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    # Install one stream handler on the root logger so worker and script output share a format.
    resolved = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    if not any(getattr(handler, "_notifyagg", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._notifyagg = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(resolved)
    # arq logs every job start and finish at INFO.
    logging.getLogger("arq").setLevel(max(root.level, logging.WARNING))
