"""Exceptions raised by SealDB operations.

Every error carries the model (and field, where one is at fault) so a host
application can report it without parsing messages.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class RecordValidationError:
    """A single record validation error."""

    field: str
    message: str
    code: str


@dataclass
class SchemaValidationIssue:
    """A single problem found while validating a schema document."""

    path: str
    message: str
    code: str


class SealDBError(Exception):
    """Base class for all SealDB errors."""

    def __init__(self, message: str, *, model: str | None = None, field: str | None = None):
        self.model = model
        self.field = field
        super().__init__(message)


class SchemaError(SealDBError):
    """Raised when the schema is missing or structurally invalid."""

    def __init__(
        self,
        message: str,
        *,
        issues: list[SchemaValidationIssue] | None = None,
        model: str | None = None,
        field: str | None = None,
    ):
        self.issues = list(issues or [])
        if self.issues:
            details = "; ".join(f"{i.path}: {i.message}" for i in self.issues)
            message = f"{message}: {details}"
        super().__init__(message, model=model, field=field)


class ValidationError(SealDBError):
    """Raised when record data violates the model schema."""

    def __init__(self, model: str, errors: list[RecordValidationError]):
        self.errors = list(errors)
        details = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        field = self.errors[0].field if self.errors else None
        super().__init__(f"Validation failed for '{model}': {details}", model=model, field=field)

    @property
    def codes(self) -> list[str]:
        return [e.code for e in self.errors]


class UniqueConstraintError(SealDBError):
    """Raised when a value already exists on a unique (or id) field."""

    def __init__(self, model: str, field: str, value: Any):
        self.value = value
        super().__init__(
            f"Unique constraint failed on '{model}.{field}' for value {value!r}",
            model=model,
            field=field,
        )


class NotFoundError(SealDBError):
    """Raised when a unique lookup for update/delete matches no record."""

    def __init__(self, model: str, where: dict[str, Any]):
        self.where = where
        super().__init__(f"No '{model}' record found for {where!r}", model=model)


class StorageError(SealDBError):
    """Raised when reading or writing the data directory fails."""


class CorruptionError(SealDBError):
    """Raised when a persisted collection cannot be decrypted or decoded."""


class QueryError(SealDBError):
    """Raised for an unusable query shape (bad orderBy, mixed-type sort keys)."""
