import logging
from contextlib import asynccontextmanager
from typing import Any, Iterable, NoReturn

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.models.constraints import SchemaConstraint
from .base import DatabaseInsertError, EntityValidationError, FieldViolation, RepositoryError
from .integrity_classifier import classify_integrity_error

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error has occurred."


# -----------------------
# Constraint violations
# -----------------------

def resolve_constraint(exc: IntegrityError) -> SchemaConstraint | None:
    """
    Find the catalogued constraint behind an IntegrityError: the name reported by the
    driver first, then any catalogued name embedded in the raw message.
    """
    _, constraint_name = classify_integrity_error(exc)
    constraint = SchemaConstraint.lookup(constraint_name)
    if constraint is None:
        raw = str(exc.orig) if exc.orig is not None else str(exc)
        constraint = SchemaConstraint.find_in(raw)
    return constraint


def _integrity_message(exc: IntegrityError) -> str:
    constraint = resolve_constraint(exc)
    if constraint is None:
        return GENERIC_ERROR_MESSAGE
    return constraint.message


# -----------------------
# Field violations
# -----------------------

_REQUEST_LOCATIONS = ("body", "path", "query")


def _format_loc(loc: Iterable[Any]) -> str:
    """('body', 'instructions', 0, 'steps') -> 'instructions[0].steps'"""
    parts = list(loc)
    if parts and parts[0] in _REQUEST_LOCATIONS:
        parts = parts[1:]
    field = ""
    for part in parts:
        if isinstance(part, int):
            field += f"[{part}]"
        else:
            field += f".{part}" if field else str(part)
    return field or "request body"


def _pydantic_message(error: dict) -> str:
    error_type = error.get("type", "")
    ctx = error.get("ctx") or {}
    msg = str(error.get("msg", ""))

    if error_type == "missing":
        return "must not be null"
    if error_type in ("string_too_short", "too_short"):
        minimum = ctx.get("min_length", 1)
        return "must not be empty" if minimum == 1 else f"size must be at least {minimum}"
    if error_type in ("string_too_long", "too_long"):
        return f"must not exceed {ctx.get('max_length')} characters"
    if error_type in ("int_parsing", "int_type"):
        return "must be a valid integer"
    if error_type == "json_invalid":
        return "is not valid JSON"
    if error_type == "value_error":
        return msg.removeprefix("Value error, ")
    return msg


def _violation_field(error: dict) -> str:
    # json_invalid locates the parse failure by character offset
    if error.get("type") == "json_invalid":
        return "request body"
    return _format_loc(error.get("loc", ()))


def violations_from_pydantic(errors: Iterable[dict]) -> list[FieldViolation]:
    return [FieldViolation(_violation_field(error), _pydantic_message(error)) for error in errors]


def _violations_message(violations: list[FieldViolation]) -> str:
    if not violations:
        return GENERIC_ERROR_MESSAGE
    sentences = []
    for violation in violations:
        field = violation.field[:1].upper() + violation.field[1:]
        sentences.append(f"{field} {violation.message}.")
    return " ".join(sentences)


def to_user_message(error: BaseException) -> str:
    """
    Translate a low-level error into the message shown to API clients.

    - IntegrityError: message of the violated catalogued constraint.
    - EntityValidationError / pydantic ValidationError / RequestValidationError:
      one "Field message." sentence per violation, joined with spaces.
    Anything unrecognized yields GENERIC_ERROR_MESSAGE.
    """
    if isinstance(error, IntegrityError):
        return _integrity_message(error)
    if isinstance(error, EntityValidationError):
        return _violations_message(error.violations)
    if isinstance(error, (ValidationError, RequestValidationError)):
        return _violations_message(violations_from_pydantic(error.errors()))
    return GENERIC_ERROR_MESSAGE


# -----------------------
# Mapper
# -----------------------

def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None) -> NoReturn:
    """
    Map a SQLAlchemy IntegrityError to DatabaseInsertError and raise it.
    """
    exc_cls, _ = classify_integrity_error(exc)
    constraint = resolve_constraint(exc)
    model_part = model_name or "Record"

    if constraint is None:
        # Warn: an unnamed or unknown constraint means the catalog missed something
        logger.warning(
            "mapper.unknown_integrity_error",
            extra={"model": model_part, "kind": exc_cls.__name__},
        )
        logger.debug(
            "mapper.unknown_integrity_raw",
            extra={"model": model_part, "raw": str(exc.orig) if exc.orig is not None else str(exc)},
        )
        raise DatabaseInsertError(GENERIC_ERROR_MESSAGE) from exc

    # Expected client-level scenario (400), log at INFO
    logger.info(
        "mapper.constraint_violation",
        extra={"model": model_part, "kind": exc_cls.__name__, "constraint": constraint.value},
    )
    raise DatabaseInsertError(constraint.message, constraint=constraint.value) from exc


# -----------------------
# Async context manager wrapping every write transaction in the services
# -----------------------

async def _rollback(db: AsyncSession, model_name: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception("mapper.rollback_failed", extra={"model": model_name})


@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Usage:
        async with db_error_handler(self.db, "Drill"):
            ... flushes and the final commit ...

    Rolls the session back on any error. Constraint and entity validation failures
    are raised as DatabaseInsertError; anything unexpected is logged and re-raised
    unchanged so it surfaces as a 500.
    """
    try:
        yield
    except IntegrityError as exc:
        await _rollback(db, model_name)
        raise_mapped_integrity_error(exc, model_name)
    except EntityValidationError as exc:
        await _rollback(db, model_name)
        logger.info(
            "mapper.entity_validation_failed",
            extra={"model": model_name, "fields": exc.fields},
        )
        raise DatabaseInsertError(to_user_message(exc), fields=exc.fields) from exc
    except RepositoryError:
        await _rollback(db, model_name)
        raise
    except Exception:
        await _rollback(db, model_name)
        logger.exception("mapper.unexpected_db_error", extra={"model": model_name})
        raise
