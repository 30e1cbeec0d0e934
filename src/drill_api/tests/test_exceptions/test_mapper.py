import pytest
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from drill_api.exceptions.base import DatabaseInsertError, EntityValidationError, FieldViolation
from drill_api.exceptions.mapper import (
    GENERIC_ERROR_MESSAGE,
    db_error_handler,
    raise_mapped_integrity_error,
    to_user_message,
)
from drill_api.schemas.drill import DrillUpdate


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO categories (name) VALUES (?)", {}, Exception(message))


class FakeSession:
    """Stands in for AsyncSession; only rollback() is used by db_error_handler."""

    def __init__(self):
        self.rollbacks = 0

    async def rollback(self):
        self.rollbacks += 1


class TestToUserMessage:

    def test_known_constraint(self):
        exc = integrity_error("UNIQUE constraint failed: index 'constraint_categories_unique_name'")

        assert to_user_message(exc) == "Name already exists."

    def test_catalogued_name_found_anywhere_in_message(self):
        """
        Behavior:
            - When no pattern extracts a name, the raw text is scanned for any
              catalogued constraint.
        """
        exc = integrity_error("violation of constraint_dscjoin_fk_sub_category_id detected")

        assert to_user_message(exc) == "Sub-Category does not exist."

    def test_unknown_constraint_yields_generic_message(self):
        exc = integrity_error("FOREIGN KEY constraint failed")

        assert to_user_message(exc) == GENERIC_ERROR_MESSAGE

    def test_entity_violations_one_sentence_each(self):
        exc = EntityValidationError(
            "Invalid Drill",
            violations=[
                FieldViolation("name", "must not be empty"),
                FieldViolation("instructions[0].description", "size must be between 1 and 511"),
            ],
        )

        assert to_user_message(exc) == (
            "Name must not be empty. Instructions[0].description size must be between 1 and 511."
        )

    def test_pydantic_violations(self):
        # Arrange: missing name, a step with the delimiter, an over-long video id
        with pytest.raises(ValidationError) as exc_info:
            DrillUpdate.model_validate(
                {
                    "instructions": [
                        {"description": "Chamber", "steps": ["a|b"], "video_id": "v" * 128},
                    ]
                }
            )

        # Act
        message = to_user_message(exc_info.value)

        # Assert
        assert "Name must not be null." in message
        assert "Instructions[0].steps must not contain '|'." in message
        assert "Instructions[0].video_id must not exceed 127 characters." in message

    def test_empty_string_reads_as_must_not_be_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            DrillUpdate.model_validate({"name": ""})

        assert to_user_message(exc_info.value) == "Name must not be empty."

    @pytest.mark.parametrize(
        "error, message",
        [
            (
                {"type": "int_parsing", "loc": ("path", "entity_id"), "msg": "Input should be a valid integer"},
                "Entity_id must be a valid integer.",
            ),
            (
                {"type": "int_parsing", "loc": ("query", "limit"), "msg": "Input should be a valid integer"},
                "Limit must be a valid integer.",
            ),
            (
                {"type": "json_invalid", "loc": ("body", 12), "msg": "JSON decode error"},
                "Request body is not valid JSON.",
            ),
            (
                {"type": "bool_parsing", "loc": ("body", "active"), "msg": "Input should be a valid boolean"},
                "Active Input should be a valid boolean.",
            ),
        ],
    )
    def test_request_violations_drop_location_prefix(self, error, message):
        assert to_user_message(RequestValidationError([error])) == message

    def test_anything_else_is_generic(self):
        assert to_user_message(RuntimeError("boom")) == GENERIC_ERROR_MESSAGE


class TestRaiseMappedIntegrityError:

    def test_known_constraint_becomes_insert_error(self):
        exc = integrity_error("UNIQUE constraint failed: index 'constraint_drills_unique_name'")

        with pytest.raises(DatabaseInsertError) as exc_info:
            raise_mapped_integrity_error(exc, "Drill")

        error = exc_info.value
        assert error.message == "Name already exists."
        assert error.constraint == "constraint_drills_unique_name"
        assert error.to_payload() == {"error": "Database Insert Error", "message": "Name already exists."}
        assert error.http_status() == 400
        assert error.__cause__ is exc

    def test_unknown_constraint_is_generic_and_hides_raw_text(self):
        exc = integrity_error("CHECK constraint failed: secret_internal_rule")

        with pytest.raises(DatabaseInsertError) as exc_info:
            raise_mapped_integrity_error(exc, "Drill")

        assert exc_info.value.message == GENERIC_ERROR_MESSAGE
        assert "secret_internal_rule" not in str(exc_info.value.to_payload())


class TestDbErrorHandler:

    async def test_integrity_error_rolls_back_and_maps(self):
        db = FakeSession()

        with pytest.raises(DatabaseInsertError) as exc_info:
            async with db_error_handler(db, "Category"):
                raise integrity_error("UNIQUE constraint failed: index 'constraint_categories_unique_name'")

        assert db.rollbacks == 1
        assert exc_info.value.message == "Name already exists."

    async def test_entity_validation_becomes_insert_error(self):
        db = FakeSession()

        with pytest.raises(DatabaseInsertError) as exc_info:
            async with db_error_handler(db, "Drill"):
                raise EntityValidationError(
                    "Invalid Drill", violations=[FieldViolation("name", "must not be empty")]
                )

        assert db.rollbacks == 1
        assert exc_info.value.message == "Name must not be empty."
        assert exc_info.value.fields == ["name"]

    async def test_repository_error_passes_through(self):
        db = FakeSession()
        original = DatabaseInsertError("Related Drill does not exist.")

        with pytest.raises(DatabaseInsertError) as exc_info:
            async with db_error_handler(db, "Drill"):
                raise original

        assert exc_info.value is original
        assert db.rollbacks == 1

    async def test_unexpected_error_is_reraised_unchanged(self):
        """
        Behavior:
            - Anything that is not a known client error is rolled back and re-raised
              as is, so the API answers 500 instead of disguising it as a 400.
        """
        db = FakeSession()

        with pytest.raises(ZeroDivisionError):
            async with db_error_handler(db, "Drill"):
                1 / 0

        assert db.rollbacks == 1

    async def test_success_does_not_roll_back(self):
        db = FakeSession()

        async with db_error_handler(db, "Drill"):
            pass

        assert db.rollbacks == 0
