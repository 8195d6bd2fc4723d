"""Process-wide logging setup."""

from __future__ import annotations

import logging.config

from boostshop.core.config import Settings

_configured = False


def configure_logging(settings: Settings) -> None:
    """Install the root handler once; later calls only adjust the level."""
    global _configured
    level = settings.logging.level.upper()
    if _configured:
        logging.getLogger().setLevel(level)
        return

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": settings.logging.format},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                # uvicorn keeps its own access handler
                "uvicorn.access": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )
    _configured = True


__all__ = ["configure_logging"]
