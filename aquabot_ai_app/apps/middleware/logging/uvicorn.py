# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# middleware/logging/uvicorn.py
import logging
import logging.config
from typing import Iterable

class UvicornAccessPathFilter(logging.Filter):
    """Hide access logs for selected paths (health probes)."""
    def __init__(self, silenced_paths: Iterable[str] = ()):
        super().__init__()
        self.silenced_paths = set(silenced_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        req_line = getattr(record, "request_line", None)
        if not req_line and isinstance(record.args, tuple) and len(record.args) >= 3:
            # uvicorn access args: (client_addr, method, path, http_version, status)
            req_line = f"{record.args[1]} {record.args[2]}"

        if not isinstance(req_line, str):
            return True

        parts = req_line.split()
        path = parts[1] if len(parts) >= 2 else ""
        return path.split("?", 1)[0] not in self.silenced_paths

def configure_logging(level: str = "INFO", silenced_paths=("/health",)):
    """
    Call once, as early as possible (before app = FastAPI(...)).
    """
    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "uvicorn_access_filter": {
                "()": UvicornAccessPathFilter,
                "silenced_paths": list(silenced_paths),
            }
        },
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s:%(name)s:%(message)s"},
            "access":  {"format": "%(levelname)s:%(name)s:%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
            "access_console": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "filters": ["uvicorn_access_filter"],
            },
        },
        "loggers": {
            "aquabot_ai_app": {"level": level.upper(), "handlers": ["console"], "propagate": False},
            "uvicorn":        {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.error":  {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["access_console"], "propagate": False},

            # anthropic/httpx request chatter
            "httpx": {"level": "WARNING"},
        },
    }

    logging.config.dictConfig(LOGGING_CONFIG)
