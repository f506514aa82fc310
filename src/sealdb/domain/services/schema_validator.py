"""Schema validation service for model and field definitions.

Validates a raw schema document (as decoded from JSON) before it is turned
into :class:`~sealdb.domain.entities.schema.SchemaDefinition` entities.
Every problem is collected so a single error can report all of them.
"""

import re
from datetime import date, datetime
from typing import Any

from sealdb.core.dates import canonical_date
from sealdb.core.exceptions import SchemaValidationIssue
from sealdb.domain.entities.schema import (
    DEFAULT_NOW,
    DEFAULT_UUID,
    GENERATED_DEFAULTS,
    FieldType,
)

# Pattern for valid model and field names (model names become file names)
NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

FLAG_KEYS = ("isId", "isRequired", "isUnique")
KNOWN_FIELD_KEYS = frozenset(
    {"type", "isId", "isRequired", "isUnique", "default", "ref", "items", "properties"}
)


class SchemaValidator:
    """Validator for schema documents.

    Validates model names, field definitions, id declarations and references.
    """

    MAX_NAME_LENGTH = 64

    @classmethod
    def validate_name(cls, name: Any, path: str, kind: str) -> list[SchemaValidationIssue]:
        """Validate a model or field name.

        Args:
            name: The name to validate.
            path: Location of the name in the document (for error messages).
            kind: ``"model"`` or ``"field"``.

        Returns:
            List of validation issues (empty if valid).
        """
        if not isinstance(name, str) or not name:
            return [SchemaValidationIssue(path, f"{kind.capitalize()} name is required", f"{kind}_name_required")]

        issues = []
        if len(name) > cls.MAX_NAME_LENGTH:
            issues.append(
                SchemaValidationIssue(
                    path,
                    f"{kind.capitalize()} name must be at most {cls.MAX_NAME_LENGTH} characters",
                    f"{kind}_name_too_long",
                )
            )
        if not NAME_PATTERN.match(name):
            issues.append(
                SchemaValidationIssue(
                    path,
                    f"{kind.capitalize()} name must start with a letter and contain only "
                    "alphanumeric characters and underscores",
                    f"{kind}_name_invalid_format",
                )
            )
        return issues

    @classmethod
    def validate_default(cls, default: Any, field_type: str, path: str) -> list[SchemaValidationIssue]:
        """Check that a default value matches the declared field type."""
        if default is None:
            return []

        if isinstance(default, str) and default in GENERATED_DEFAULTS:
            expected = FieldType.DATE.value if default == DEFAULT_NOW else FieldType.STRING.value
            if field_type != expected:
                return [
                    SchemaValidationIssue(
                        f"{path}.default",
                        f"Default '{default}' is only valid for {expected} fields",
                        "default_generator_type_mismatch",
                    )
                ]
            return []

        checks = {
            FieldType.STRING.value: lambda v: isinstance(v, str),
            FieldType.NUMBER.value: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
            FieldType.BOOLEAN.value: lambda v: isinstance(v, bool),
            FieldType.DATE.value: lambda v: isinstance(v, (str, date, datetime)),
            FieldType.OBJECT.value: lambda v: isinstance(v, dict),
            FieldType.ARRAY.value: lambda v: isinstance(v, list),
        }
        check = checks.get(field_type)
        if check is not None and not check(default):
            return [
                SchemaValidationIssue(
                    f"{path}.default",
                    f"Default value {default!r} does not match field type '{field_type}'",
                    "default_type_mismatch",
                )
            ]
        if field_type == FieldType.DATE.value and isinstance(default, str):
            try:
                canonical_date(default)
            except ValueError:
                return [
                    SchemaValidationIssue(
                        f"{path}.default",
                        f"Default value {default!r} is not an ISO 8601 date",
                        "default_date_invalid",
                    )
                ]
        return []

    @classmethod
    def validate_field(
        cls, spec: Any, path: str, model_names: set[str], nested: bool = False
    ) -> list[SchemaValidationIssue]:
        """Validate a single field descriptor.

        Args:
            spec: The raw field descriptor.
            path: Location in the document (for error messages).
            model_names: Names of every model in the document, for ``ref`` checks.
            nested: True for ``items``/``properties`` descriptors, which may not
                carry id/unique/ref flags.

        Returns:
            List of validation issues (empty if valid).
        """
        if not isinstance(spec, dict):
            return [SchemaValidationIssue(path, "Field definition must be an object", "field_not_object")]

        issues: list[SchemaValidationIssue] = []

        unknown = sorted(set(spec) - KNOWN_FIELD_KEYS)
        if unknown:
            issues.append(
                SchemaValidationIssue(path, f"Unknown field options: {', '.join(unknown)}", "field_option_unknown")
            )

        field_type = spec.get("type")
        valid_types = [t.value for t in FieldType]
        if not field_type:
            issues.append(SchemaValidationIssue(f"{path}.type", "Field type is required", "field_type_required"))
            return issues
        if field_type not in valid_types:
            issues.append(
                SchemaValidationIssue(
                    f"{path}.type",
                    f"Invalid field type '{field_type}'. Valid types: {', '.join(valid_types)}",
                    "field_type_invalid",
                )
            )
            return issues

        for flag in FLAG_KEYS:
            if flag in spec and not isinstance(spec[flag], bool):
                issues.append(SchemaValidationIssue(f"{path}.{flag}", f"'{flag}' must be a boolean", "flag_not_boolean"))

        if nested:
            for key in ("isId", "isUnique", "ref"):
                if spec.get(key):
                    issues.append(
                        SchemaValidationIssue(
                            f"{path}.{key}",
                            f"'{key}' is not allowed on nested descriptors",
                            "nested_option_not_allowed",
                        )
                    )

        if spec.get("isId") is True and field_type not in (FieldType.STRING.value, FieldType.NUMBER.value):
            issues.append(
                SchemaValidationIssue(
                    f"{path}.type",
                    "Id fields must be of type 'string' or 'number'",
                    "id_type_invalid",
                )
            )

        ref = spec.get("ref")
        if ref is not None:
            if not isinstance(ref, str) or ref not in model_names:
                issues.append(
                    SchemaValidationIssue(
                        f"{path}.ref",
                        f"Reference to undefined model {ref!r}",
                        "ref_undefined_model",
                    )
                )
            elif field_type not in (FieldType.STRING.value, FieldType.NUMBER.value):
                issues.append(
                    SchemaValidationIssue(
                        f"{path}.ref",
                        "Reference fields must be of type 'string' or 'number'",
                        "ref_type_invalid",
                    )
                )

        if "items" in spec:
            if field_type != FieldType.ARRAY.value:
                issues.append(
                    SchemaValidationIssue(f"{path}.items", "'items' is only valid on array fields", "items_not_allowed")
                )
            else:
                issues.extend(cls.validate_field(spec["items"], f"{path}.items", model_names, nested=True))

        if "properties" in spec:
            props = spec["properties"]
            if field_type != FieldType.OBJECT.value:
                issues.append(
                    SchemaValidationIssue(
                        f"{path}.properties",
                        "'properties' is only valid on object fields",
                        "properties_not_allowed",
                    )
                )
            elif not isinstance(props, dict):
                issues.append(
                    SchemaValidationIssue(f"{path}.properties", "'properties' must be an object", "properties_not_object")
                )
            else:
                for prop_name, prop_spec in props.items():
                    prop_path = f"{path}.properties.{prop_name}"
                    issues.extend(cls.validate_name(prop_name, prop_path, "field"))
                    issues.extend(cls.validate_field(prop_spec, prop_path, model_names, nested=True))

        issues.extend(cls.validate_default(spec.get("default"), field_type, path))
        if spec.get("isId") is True and spec.get("default") == DEFAULT_NOW:
            issues.append(SchemaValidationIssue(f"{path}.default", "Id fields cannot default to now()", "id_default_invalid"))
        if nested and spec.get("default") == DEFAULT_UUID:
            issues.append(
                SchemaValidationIssue(f"{path}.default", "Generated defaults are not allowed on nested descriptors", "nested_option_not_allowed")
            )

        return issues

    @classmethod
    def validate_model(cls, name: Any, fields: Any, model_names: set[str]) -> list[SchemaValidationIssue]:
        """Validate one model definition, including its id declaration."""
        issues = cls.validate_name(name, str(name), "model")

        if not isinstance(fields, dict) or not fields:
            issues.append(
                SchemaValidationIssue(str(name), "Model must define at least one field", "model_fields_empty")
            )
            return issues

        id_fields = []
        for field_name, spec in fields.items():
            path = f"{name}.{field_name}"
            issues.extend(cls.validate_name(field_name, path, "field"))
            issues.extend(cls.validate_field(spec, path, model_names))
            if isinstance(spec, dict) and spec.get("isId") is True:
                id_fields.append(field_name)

        if not id_fields:
            issues.append(
                SchemaValidationIssue(str(name), "Model must declare exactly one id field (isId), found none", "id_missing")
            )
        elif len(id_fields) > 1:
            issues.append(
                SchemaValidationIssue(
                    str(name),
                    f"Model must declare exactly one id field (isId), found {len(id_fields)}: {', '.join(id_fields)}",
                    "id_duplicate",
                )
            )

        return issues

    @classmethod
    def validate(cls, document: Any) -> list[SchemaValidationIssue]:
        """Validate a complete schema document.

        Args:
            document: Mapping of model name to field definitions.

        Returns:
            List of validation issues (empty if valid).
        """
        if not isinstance(document, dict):
            return [SchemaValidationIssue("$", "Schema must be an object mapping model names to fields", "schema_not_object")]
        if not document:
            return [SchemaValidationIssue("$", "Schema must define at least one model", "schema_empty")]

        model_names = {name for name in document if isinstance(name, str)}
        issues: list[SchemaValidationIssue] = []
        for name, fields in document.items():
            issues.extend(cls.validate_model(name, fields, model_names))
        return issues
