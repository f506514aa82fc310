"""Domain entities for SealDB.

Entities are pure Python dataclasses describing the schema. They have no
dependencies on infrastructure.
"""

from sealdb.domain.entities.schema import FieldSpec, FieldType, SchemaDefinition, SchemaModel

__all__ = [
    "FieldSpec",
    "FieldType",
    "SchemaDefinition",
    "SchemaModel",
]
