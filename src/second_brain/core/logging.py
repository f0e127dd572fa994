"""
Logging Configuration

One stdout handler for the app, uvicorn and the chattier libraries.
Request-level detail (owner id, note id, query length) is added by the
callers; this module only decides where lines go and at what level.
"""

import sys
from logging.config import dictConfig

from second_brain.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request or statement at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def _console(level: str) -> dict:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging() -> None:
    """
    Configure logging from ``LOG_LEVEL``.

    Call once at application startup, before the app object is built.
    Safe to call again (tests import ``main`` repeatedly).
    """
    log_level = settings.LOG_LEVEL.upper()

    loggers = {
        "second_brain": _console(log_level),
        "uvicorn": _console("INFO"),
        "uvicorn.access": _console("INFO"),
        "alembic": _console("INFO"),
    }
    loggers.update({name: _console("WARNING") for name in QUIET_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
