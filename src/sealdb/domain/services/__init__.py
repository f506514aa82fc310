"""Domain services for schema and record validation."""

from sealdb.domain.services.record_validator import RecordValidator
from sealdb.domain.services.schema_loader import load_schema, parse_schema
from sealdb.domain.services.schema_validator import SchemaValidator

__all__ = [
    "RecordValidator",
    "SchemaValidator",
    "load_schema",
    "parse_schema",
]
