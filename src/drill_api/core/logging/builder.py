# src/drill_api/core/logging/builder.py
"""
Logging builder: turn Settings into a dictConfig mapping and apply it.

Handlers:
  - console: always, at LOG_LEVEL
  - file + error_file: rotating app.log / errors.log when LOG_TO_STDOUT is false
    and LOG_DIR is set
  - error_console: JSON errors on the console otherwise

| LOG_TO_STDOUT | LOG_DIR | Active handlers              |
| ------------- | ------- | ---------------------------- |
| true          | any     | console + error_console      |
| false         | unset   | console + error_console      |
| false         | set     | console + file + error_file  |
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

from drill_api.config.settings import Settings
from drill_api.utils.metadata import get_project_name

from .filters import RedactFilter, RequestIdFilter
from .formatters import ColorFormatter, JsonFormatter
from .handlers import (
    get_console_handler,
    get_error_console_handler,
    get_error_file_handler,
    get_file_handler,
)

DEFAULT_SERVICE_NAME = "drill-api"


def uses_log_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping: formatters "standard" and "json", filters
    "request_id" and "redact", the handlers above, and the root, uvicorn and
    sqlalchemy.engine loggers.
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default=DEFAULT_SERVICE_NAME),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if uses_log_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "uvicorn.error": {
                "level": settings.LOG_LEVEL,
                "handlers": list(handlers.keys()),
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            # SQL statements may carry user data; off unless asked for
            "sqlalchemy.engine": {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the configuration. Creates LOG_DIR when file logging is on, and adds a
    RequestIdFilter to the root logger so records logged before any handler
    filter runs still carry `request_id`.
    """
    if uses_log_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    logging.getLogger().addFilter(RequestIdFilter())
