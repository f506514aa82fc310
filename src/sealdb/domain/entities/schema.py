"""Schema entities describing models and their fields.

A schema is loaded once when the client is constructed and never mutated.
These are passive data structures; validation of the schema document lives in
:mod:`sealdb.domain.services.schema_validator`.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from sealdb.core.exceptions import SchemaError


class FieldType(str, Enum):
    """Supported field types for model schemas."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"


# Default values that are generated per record instead of copied.
DEFAULT_NOW = "now()"
DEFAULT_UUID = "uuid()"
GENERATED_DEFAULTS = frozenset({DEFAULT_NOW, DEFAULT_UUID})

ID_FIELD_TYPES = frozenset({FieldType.STRING, FieldType.NUMBER})


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one field of a model.

    Attributes:
        name: Field name (the key in a record).
        type: Declared value type.
        is_id: Whether this is the model's primary identifier.
        is_required: Whether the field must be present and non-null.
        is_unique: Whether two records may not share a value.
        default: Literal default or a generator token (``now()``, ``uuid()``).
        ref: Target model name for relationship-by-id fields.
        items: Element descriptor for array fields.
        properties: Member descriptors for object fields.
    """

    name: str
    type: FieldType
    is_id: bool = False
    is_required: bool = False
    is_unique: bool = False
    default: Any = None
    ref: str | None = None
    items: "FieldSpec | None" = None
    properties: Mapping[str, "FieldSpec"] | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def is_generated_default(self) -> bool:
        return isinstance(self.default, str) and self.default in GENERATED_DEFAULTS


@dataclass(frozen=True)
class SchemaModel:
    """A named record type with a fixed field schema."""

    name: str
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def id_field(self) -> FieldSpec:
        for spec in self.fields.values():
            if spec.is_id:
                return spec
        raise SchemaError(f"Model '{self.name}' has no id field", model=self.name)

    @property
    def unique_fields(self) -> list[FieldSpec]:
        """Fields whose values must be distinct, the id field first."""
        id_field = self.id_field
        return [id_field] + [f for f in self.fields.values() if f.is_unique and not f.is_id]

    @property
    def required_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields.values() if f.is_required]

    @property
    def reference_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields.values() if f.ref]

    def get_field(self, name: str) -> FieldSpec | None:
        return self.fields.get(name)

    def is_unique_key(self, name: str) -> bool:
        spec = self.fields.get(name)
        return spec is not None and (spec.is_id or spec.is_unique)


@dataclass(frozen=True)
class SchemaDefinition:
    """Mapping from model name to :class:`SchemaModel`."""

    models: Mapping[str, SchemaModel] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "models", MappingProxyType(dict(self.models)))

    @property
    def model_names(self) -> list[str]:
        return list(self.models)

    def get_model(self, name: str) -> SchemaModel:
        """Return the model named ``name``.

        Raises:
            SchemaError: If the schema does not define the model.
        """
        try:
            return self.models[name]
        except KeyError:
            raise SchemaError(f"Unknown model '{name}'", model=name) from None

    def __contains__(self, name: object) -> bool:
        return name in self.models
