# src/drill_api/core/logging/filters.py
"""
Logging filters.

The request id lives in a ContextVar so it follows the request across awaits.
RequestIDMiddleware sets it; RequestIdFilter copies it onto every LogRecord so
`%(request_id)s` in format strings never raises.
"""

import contextvars
import logging
from logging import LogRecord

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Set the request id for the current context; returns the token for reset_request_id()."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Guarantee `record.request_id`: an explicit `extra={"request_id": ...}` wins,
    then the context value, then "-". Never drops a record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    """Mask record attributes whose name marks them as secrets (e.g. a DB password in extras)."""

    SENSITIVE = {"password", "secret", "token", "access_token", "refresh_token", "authorization", "database_url"}
    MASK = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.MASK
        return True
