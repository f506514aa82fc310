"""Schema loading: JSON document -> :class:`SchemaDefinition`."""

import json
from pathlib import Path
from typing import Any, Mapping

from sealdb.core.exceptions import SchemaError
from sealdb.core.logging import get_logger
from sealdb.domain.entities.schema import FieldSpec, FieldType, SchemaDefinition, SchemaModel
from sealdb.domain.services.schema_validator import SchemaValidator

logger = get_logger(__name__)


def _build_field(name: str, spec: Mapping[str, Any]) -> FieldSpec:
    items = spec.get("items")
    properties = spec.get("properties")
    return FieldSpec(
        name=name,
        type=FieldType(spec["type"]),
        is_id=spec.get("isId", False),
        is_required=spec.get("isRequired", False),
        is_unique=spec.get("isUnique", False),
        default=spec.get("default"),
        ref=spec.get("ref"),
        items=_build_field(f"{name}[]", items) if items is not None else None,
        properties=(
            {prop: _build_field(prop, prop_spec) for prop, prop_spec in properties.items()}
            if properties is not None
            else None
        ),
    )


def parse_schema(document: Any) -> SchemaDefinition:
    """Validate a decoded schema document and build the schema entities.

    Accepts either ``{model: fields}`` or ``{"models": {model: fields}}``.

    Raises:
        SchemaError: If the document is structurally invalid.
    """
    if isinstance(document, dict) and set(document) == {"models"}:
        document = document["models"]

    issues = SchemaValidator.validate(document)
    if issues:
        raise SchemaError("Invalid schema", issues=issues)

    models = {
        model_name: SchemaModel(
            name=model_name,
            fields={field_name: _build_field(field_name, spec) for field_name, spec in fields.items()},
        )
        for model_name, fields in document.items()
    }
    return SchemaDefinition(models=models)


def load_schema(path: str | Path) -> SchemaDefinition:
    """Read and parse a JSON schema file.

    Raises:
        SchemaError: If the file is missing, unreadable, not JSON, or invalid.
    """
    schema_path = Path(path)
    try:
        raw = schema_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaError(f"Cannot read schema file '{schema_path}': {e}") from e

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Schema file '{schema_path}' is not valid JSON: {e}") from e

    schema = parse_schema(document)
    logger.info("Schema loaded", path=str(schema_path), models=schema.model_names)
    return schema
