import sys
from logging.config import dictConfig
from typing import Any

from autodocs.core.config import settings


def build_logging_config(level: str | None = None) -> dict[str, Any]:
    """Uvicorn-compatible logging configuration with ``autodocs`` at *level*."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(asctime)s [%(name)s] "%(request_line)s" %(status_code)s',
            },
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default", "stream": sys.stderr},
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": sys.stdout},
        },
        "loggers": {
            "root": {"handlers": ["default"], "level": "INFO"},
            "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
            # The OpenAI SDK and httpx log every request at INFO
            "openai": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
            "autodocs": {"handlers": ["default"], "level": (level or settings.log_level).upper(), "propagate": False},
        },
    }


def setup_logging(level: str | None = None) -> None:
    """Configures application-wide logging using dictConfig."""
    dictConfig(build_logging_config(level))
