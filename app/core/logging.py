"""Structured logging configuration.

One stdout handler on the root logger, formatted as
``timestamp | level | logger | event``.  Services log short event names
(``message_sent``, ``call_status_changed`` ...) and pass context through
``extra``.  The level comes from ``settings.LOG_LEVEL``.
"""

import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Per-request / per-tick chatter from these is not useful at INFO
_QUIET_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "apscheduler",
    "uvicorn.access",
)


def setup_logging() -> None:
    """Install the stdout handler on the root logger.

    Safe to call repeatedly (app startup runs it once per lifespan): any
    previously installed handlers are replaced rather than duplicated.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers = [handler]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
