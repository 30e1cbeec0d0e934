import logging
import re
from enum import Enum
from typing import Type

from sqlalchemy.exc import IntegrityError

from .base import RepositoryError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Constraint-specific exceptions (internal classification, never raised to clients)
# =================================================================================================================


class ConstraintViolationError(RepositoryError):
    """Base for integrity/constraint violations."""
    pass


class UniqueConstraintError(ConstraintViolationError):
    pass


class NotNullConstraintError(ConstraintViolationError):
    pass


class ForeignKeyConstraintError(ConstraintViolationError):
    pass


class CheckConstraintError(ConstraintViolationError):
    pass


class UnknownIntegrityError(ConstraintViolationError):
    pass


# =================================================================================================================
# Postgres error code mapping
# =================================================================================================================

# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


PGCODE_EXCEPTION_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION: UniqueConstraintError,
    PostgresErrorCodes.NOT_NULL_VIOLATION: NotNullConstraintError,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION: ForeignKeyConstraintError,
    PostgresErrorCodes.CHECK_VIOLATION: CheckConstraintError,
}


# =================================================================================================================
# Constraint name extraction
# =================================================================================================================

# Postgres: 'duplicate key value violates unique constraint "constraint_drills_unique_name"'
_POSTGRES_CONSTRAINT = re.compile(r'constraint "(?P<name>[^"]+)"', flags=re.IGNORECASE)
# SQLite, expression indexes: "UNIQUE constraint failed: index 'constraint_drills_unique_name'"
_SQLITE_INDEX = re.compile(r"index '(?P<name>[^']+)'", flags=re.IGNORECASE)
# MySQL: "Duplicate entry 'kicks' for key 'categories.constraint_categories_unique_name'"
_MYSQL_KEY = re.compile(r"for key '(?:[^.']+\.)?(?P<name>[^']+)'", flags=re.IGNORECASE)


def extract_constraint_name(msg: str | None) -> str | None:
    """Best-effort extraction of the violated constraint/index name from a driver message."""
    if not msg:
        return None
    for pattern in (_POSTGRES_CONSTRAINT, _SQLITE_INDEX, _MYSQL_KEY):
        m = pattern.search(msg)
        if m:
            return m.group("name")
    return None


# =================================================================================================================
# Integrity Error Classifiers
# =================================================================================================================

def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _postgres_constraint_name(orig) -> str | None:
    # psycopg exposes diag.constraint_name; asyncpg errors arrive wrapped by the
    # SQLAlchemy adapter with the driver exception as __cause__.
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag else None
    if constraint_name:
        return constraint_name
    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "constraint_name", None) if cause is not None else None


def _classify_from_postgres_diag(orig) -> tuple[Type[ConstraintViolationError] | None, str | None]:
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not pgcode:
        return None, None

    constraint_name = _postgres_constraint_name(orig) or extract_constraint_name(str(orig))
    exception_class = PGCODE_EXCEPTION_MAP.get(pgcode)

    if exception_class:
        logger.debug(
            "integrity.postgres_diagnostic",
            extra={"pgcode": pgcode, "constraint_name": constraint_name}
        )
        return exception_class, constraint_name

    logger.warning(
        "integrity.unknown_pgcode",
        extra={"pgcode": pgcode, "constraint_name": constraint_name}
    )
    logger.debug("integrity.postgres_raw", extra={"orig_repr": repr(orig)})
    return UnknownIntegrityError, constraint_name


def _classify_from_generic_message(msg: str) -> tuple[Type[ConstraintViolationError], str | None]:
    """
    Classify integrity error based on message content (SQLite, MySQL, etc).
    """
    normalized = msg.lower()
    constraint_name = extract_constraint_name(msg)

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return UniqueConstraintError, constraint_name

    if _match_any(normalized, ["not null constraint", "not null", "null value in column"]):
        return NotNullConstraintError, constraint_name

    if _match_any(normalized, ["foreign key constraint", "foreign key", "is not present in table"]):
        return ForeignKeyConstraintError, constraint_name

    if _match_any(normalized, ["check constraint", "check failed"]):
        return CheckConstraintError, constraint_name

    logger.warning("integrity.unknown_message", extra={"message_snippet": (msg or "")[:200]})
    logger.debug("integrity.unknown_raw", extra={"raw": msg})
    return UnknownIntegrityError, constraint_name


def classify_integrity_error(exc: IntegrityError) -> tuple[Type[ConstraintViolationError], str | None]:
    """
    Heuristically classify a SQLAlchemy IntegrityError.

    Returns:
        A tuple of (ExceptionClass, constraint_name if available)
    """
    orig = exc.orig

    exception_class, constraint_name = _classify_from_postgres_diag(orig)
    if exception_class is not None:
        return exception_class, constraint_name

    return _classify_from_generic_message(str(orig) if orig is not None else str(exc))
