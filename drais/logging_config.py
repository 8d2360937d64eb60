"""Process-wide logging setup.

All modules log through ``logging.getLogger(__name__)``; this helper wires a
single console handler onto the root logger the first time it is called.
"""

import logging
from logging.config import dictConfig

_is_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure the root and ``drais`` loggers once per process."""
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                }
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )
    logging.getLogger("drais").setLevel(log_level)

    _is_configured = True
