
# drill_api/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # App-level errors (RepositoryError, DatabaseInsertError, ...)
# │   ├── integrity_classifier.py    # Classify DB-specific IntegrityErrors, extract constraint names
# │   └── mapper.py                  # Turn low-level errors into user messages and DatabaseInsertError

from .base import DatabaseInsertError, EntityValidationError, FieldViolation, RepositoryError

__all__ = [
    "RepositoryError",
    "DatabaseInsertError",
    "EntityValidationError",
    "FieldViolation",
]
