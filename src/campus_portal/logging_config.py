from __future__ import annotations

import logging

from campus_portal.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# request lines already come from the app's own middleware
QUIET_LOGGERS = {"uvicorn.access": logging.WARNING, "multipart": logging.INFO}

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return

    name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
    for logger_name, logger_level in QUIET_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(logger_level)
    _configured = True
