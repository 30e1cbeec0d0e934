"""
Application-level errors raised by repositories and services.

Everything that reaches the API layer as a client error is a RepositoryError; the
exception handlers render it with `to_payload()` and `http_status()`.
"""

from typing import Iterable, NamedTuple


class RepositoryError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['name'])
    - constraint: optional DB constraint name (for logs only, never rendered)
    - error_code: canonical short code selecting the HTTP status and error label
    """

    ERROR_CODE_TO_STATUS = {
        "insert_failed": 400,
        "invalid_field": 400,
    }

    ERROR_CODE_TO_LABEL = {
        "insert_failed": "Database Insert Error",
        "invalid_field": "Malformed Argument",
    }

    DEFAULT_LABEL = "Bad Request"

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    @property
    def error_label(self) -> str:
        return self.ERROR_CODE_TO_LABEL.get(self.error_code or "", self.DEFAULT_LABEL)

    def to_payload(self) -> dict:
        """
        JSON body for HTTP responses:
            {"error": "Database Insert Error", "message": "Name already exists."}
        The constraint name and raw DB text are never included.
        """
        return {"error": self.error_label, "message": self.message}

    def http_status(self) -> int:
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 400)
        return 400


class DatabaseInsertError(RepositoryError):
    """A save was rejected: duplicate name, unknown reference, or invalid entity."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="insert_failed")


class FieldViolation(NamedTuple):
    field: str
    message: str


class EntityValidationError(RepositoryError):
    """An entity failed field-level checks (emptiness, length) before reaching the database."""

    def __init__(self, message: str, *, violations: Iterable[FieldViolation] = ()):
        self.violations = list(violations)
        super().__init__(
            message,
            fields=[violation.field for violation in self.violations],
            error_code="invalid_field",
        )


__all__ = [
    "RepositoryError",
    "DatabaseInsertError",
    "EntityValidationError",
    "FieldViolation",
]
