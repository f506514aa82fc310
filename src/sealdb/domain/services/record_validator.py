"""Record validation service for validating record data against model schemas.

Provides validation for record data, ensuring it conforms to the model schema.
Supports field types: string, number, boolean, date, object, array. Object and
array fields are validated recursively against their ``properties``/``items``.
Date values are normalized to ISO 8601 strings so stored records only hold
JSON-compatible values.
"""

import copy
import uuid
from datetime import date, datetime
from typing import Any

from sealdb.core.dates import canonical_date, now_utc
from sealdb.core.exceptions import RecordValidationError
from sealdb.domain.entities.schema import DEFAULT_NOW, DEFAULT_UUID, FieldSpec, FieldType, SchemaModel


def _type_error(field_name: str, expected: str, value: Any) -> RecordValidationError:
    return RecordValidationError(
        field=field_name,
        message=f"Expected {expected} value, got {type(value).__name__}",
        code="invalid_type",
    )


class RecordValidator:
    """Validator for record data against model schemas.

    Validates field types, required fields, and applies default values.
    Each ``validate_*`` method returns ``(normalized_value, errors)``.
    """

    @classmethod
    def validate_string(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        if not isinstance(value, str):
            return value, [_type_error(field_name, "string", value)]
        return value, []

    @classmethod
    def validate_number(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        # bool is an int subclass, reject it explicitly
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return value, [_type_error(field_name, "number", value)]
        if isinstance(value, float) and value != value:
            return value, [
                RecordValidationError(field=field_name, message="NaN is not a storable number", code="invalid_number")
            ]
        return value, []

    @classmethod
    def validate_boolean(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        if not isinstance(value, bool):
            return value, [_type_error(field_name, "boolean", value)]
        return value, []

    @classmethod
    def validate_date(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        """Validate a date field value.

        Accepts ISO 8601 formatted strings, ``date`` or ``datetime`` objects.
        The value is returned in canonical form (see :func:`canonical_date`),
        so one instant is always stored as the same string.
        """
        if isinstance(value, (datetime, date)):
            return canonical_date(value), []

        if isinstance(value, str):
            try:
                return canonical_date(value), []
            except ValueError:
                return value, [
                    RecordValidationError(
                        field=field_name,
                        message="Invalid date format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00Z)",
                        code="invalid_date_format",
                    )
                ]

        return value, [_type_error(field_name, "date", value)]

    @classmethod
    def validate_object(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        if not isinstance(value, dict):
            return value, [_type_error(field_name, "object", value)]
        if spec.properties is None:
            return copy.deepcopy(value), []

        errors: list[RecordValidationError] = []
        result: dict[str, Any] = {}
        for key, member in value.items():
            prop = spec.properties.get(key)
            path = f"{field_name}.{key}"
            if prop is None:
                errors.append(
                    RecordValidationError(field=path, message=f"Unknown property '{key}'", code="unknown_field")
                )
                continue
            normalized, member_errors = cls.validate_value(member, prop, path)
            errors.extend(member_errors)
            result[key] = normalized
        for prop_name, prop in spec.properties.items():
            if prop.is_required and value.get(prop_name) is None:
                errors.append(
                    RecordValidationError(
                        field=f"{field_name}.{prop_name}",
                        message=f"Required property '{prop_name}' is missing",
                        code="required_missing",
                    )
                )
        return result, errors

    @classmethod
    def validate_array(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        if not isinstance(value, list):
            return value, [_type_error(field_name, "array", value)]
        if spec.items is None:
            return copy.deepcopy(value), []

        errors: list[RecordValidationError] = []
        result = []
        for index, item in enumerate(value):
            normalized, item_errors = cls.validate_value(item, spec.items, f"{field_name}[{index}]")
            errors.extend(item_errors)
            result.append(normalized)
        return result, errors

    @classmethod
    def validate_value(cls, value: Any, spec: FieldSpec, field_name: str) -> tuple[Any, list[RecordValidationError]]:
        """Validate a single value against its field descriptor.

        ``None`` is accepted for non-required fields.

        Args:
            value: The value to validate.
            spec: The field descriptor from the schema.
            field_name: The field path for error messages.

        Returns:
            Tuple of (normalized value, errors).
        """
        if value is None:
            if spec.is_required:
                return value, [
                    RecordValidationError(
                        field=field_name,
                        message=f"Required field '{field_name}' cannot be null",
                        code="required_null",
                    )
                ]
            return None, []

        validators = {
            FieldType.STRING: cls.validate_string,
            FieldType.NUMBER: cls.validate_number,
            FieldType.BOOLEAN: cls.validate_boolean,
            FieldType.DATE: cls.validate_date,
            FieldType.OBJECT: cls.validate_object,
            FieldType.ARRAY: cls.validate_array,
        }
        return validators[spec.type](value, spec, field_name)

    @classmethod
    def resolve_default(cls, spec: FieldSpec) -> Any:
        """Produce the default value for a field (generated or copied)."""
        if spec.default == DEFAULT_NOW:
            return now_utc()
        if spec.default == DEFAULT_UUID:
            return str(uuid.uuid4())
        if spec.type == FieldType.DATE and isinstance(spec.default, (str, date, datetime)):
            return canonical_date(spec.default)
        return copy.deepcopy(spec.default)

    @classmethod
    def validate_and_apply_defaults(
        cls, data: dict[str, Any], model: SchemaModel, partial: bool = False
    ) -> tuple[dict[str, Any], list[RecordValidationError]]:
        """Validate record data against the model and apply default values.

        Args:
            data: The record data to validate.
            model: The model schema.
            partial: If True, only validate fields present in data (for updates).

        Returns:
            Tuple of (processed_data, errors).
            processed_data has defaults applied for missing fields (unless partial=True).
            The id field is never reported missing; the pipeline generates it.
        """
        errors: list[RecordValidationError] = []
        processed_data: dict[str, Any] = {}

        if not isinstance(data, dict):
            return processed_data, [
                RecordValidationError(field="data", message="Record data must be an object", code="invalid_type")
            ]

        for field_name in data:
            if model.get_field(field_name) is None:
                errors.append(
                    RecordValidationError(
                        field=field_name,
                        message=f"Unknown field '{field_name}' not defined in model '{model.name}'",
                        code="unknown_field",
                    )
                )

        for field_name, spec in model.fields.items():
            if field_name in data:
                value, field_errors = cls.validate_value(data[field_name], spec, field_name)
                if spec.is_id and data[field_name] is None:
                    field_errors.append(
                        RecordValidationError(
                            field=field_name,
                            message=f"Id field '{field_name}' cannot be null",
                            code="id_null",
                        )
                    )
                if field_errors:
                    errors.extend(field_errors)
                else:
                    processed_data[field_name] = value
            elif not partial:
                if spec.has_default:
                    processed_data[field_name] = cls.resolve_default(spec)
                elif spec.is_required and not spec.is_id:
                    errors.append(
                        RecordValidationError(
                            field=field_name,
                            message=f"Required field '{field_name}' is missing",
                            code="required_missing",
                        )
                    )
                # else: optional field without default - left absent

        return processed_data, errors

    @classmethod
    def check_required(cls, record: dict[str, Any], model: SchemaModel) -> list[RecordValidationError]:
        """Check that every required field of a complete record holds a value."""
        errors = []
        for spec in model.required_fields:
            if record.get(spec.name) is None:
                errors.append(
                    RecordValidationError(
                        field=spec.name,
                        message=f"Required field '{spec.name}' is missing",
                        code="required_missing",
                    )
                )
        return errors
