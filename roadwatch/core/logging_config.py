"""
Logging setup for the API process and maintenance scripts.
"""

import logging
import os
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Driver chatter drowns out ingestion logs at INFO.
_QUIET_LOGGERS = ("pymongo", "multipart", "sqlalchemy.engine")


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: Optional[int] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    ``level`` defaults to ``LOG_LEVEL`` and ``log_file`` to ``LOG_FILE``; when
    a file is configured records go to both stderr and the file.
    """
    level = _level_from_env() if level is None else level
    log_file = log_file or os.getenv("LOG_FILE") or None
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
