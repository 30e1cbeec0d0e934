# src/drill_api/core/logging/formatters.py

"""
Formatters selected by the dictConfig built in builder.py.

  - JsonFormatter: one JSON object per line for log collectors. Carries the
    observability fields (service, env, version, request_id) and every `extra`
    passed at the call site.
  - ColorFormatter: compact ANSI-colored lines for a developer terminal.

Both rely on RequestIdFilter having stamped `record.request_id`; they fall back
to "-" when it has not.
"""

import json
import logging
from logging import LogRecord
from typing import Any

from drill_api.utils.metadata import get_project_version

PROJECT_VERSION = get_project_version()

# LogRecord attributes that are either rendered explicitly or are noise in JSON output.
_RESERVED_ATTRS = frozenset({
    "args", "msg", "levelname", "levelno", "name", "created", "msecs", "relativeCreated",
    "exc_info", "exc_text", "stack_info", "funcName", "module", "filename", "process",
    "processName", "thread", "threadName", "taskName",
})


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Args:
        env: environment name included in every line
        service: logical service name included in every line
        datefmt: passed to logging.Formatter, used by formatTime()

    Non-serializable extras are rendered with str() so formatting never raises.
    """

    def __init__(self, *, env: str | None = None, service: str = "drill-api", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key in log_record or key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_record[key] = value
            except (TypeError, ValueError):
                log_record[key] = str(value)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development formatter: TIMESTAMP | LEVEL | LOGGER | REQUEST_ID | MESSAGE,
    with the level colorized and the traceback appended when present.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",   # bold cyan on white
        "INFO": "\033[32m",         # green
        "WARNING": "\033[33m",      # yellow
        "ERROR": "\033[31m",        # red
        "CRITICAL": "\033[1;41m",   # bold on red
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        # Only the level name is colored; reset before the rest of the line.
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'request_id', '-'):<10} | "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base
