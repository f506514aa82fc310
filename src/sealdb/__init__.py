"""SealDB - embedded, schema-validated, encrypted document storage.

One encrypted flat file per model, queried through an ORM-style async
interface with declarative ``where`` filters.
"""

__version__ = "0.1.0"

from sealdb.client import SealClient
from sealdb.core.config import Settings, get_settings
from sealdb.core.exceptions import (
    CorruptionError,
    NotFoundError,
    QueryError,
    SchemaError,
    SealDBError,
    StorageError,
    UniqueConstraintError,
    ValidationError,
)
from sealdb.domain.services.schema_loader import load_schema, parse_schema

__all__ = [
    "SealClient",
    "Settings",
    "get_settings",
    "load_schema",
    "parse_schema",
    "SealDBError",
    "SchemaError",
    "ValidationError",
    "UniqueConstraintError",
    "NotFoundError",
    "StorageError",
    "CorruptionError",
    "QueryError",
    "__version__",
]
