"""Read-only queries over cached collections.

Queries never trigger persistence. Returned records are copies; mutating
them does not affect the cache.
"""

import copy
from typing import Any

from sealdb.core.dates import canonical_date
from sealdb.core.exceptions import QueryError
from sealdb.core.filters import apply_query, evaluate, filter_records, is_operator_map
from sealdb.domain.entities.schema import FieldType, SchemaDefinition, SchemaModel
from sealdb.infrastructure.persistence.collection_cache import CollectionCache


def _date_operand(value: Any) -> Any:
    try:
        return canonical_date(value)
    except (TypeError, ValueError):
        return value


def _normalize_date_condition(condition: Any) -> Any:
    if not is_operator_map(condition):
        return _date_operand(condition)
    normalized = {}
    for name, operand in condition.items():
        if name == "not" and is_operator_map(operand):
            normalized[name] = _normalize_date_condition(operand)
        elif name in ("in", "notIn") and isinstance(operand, (list, tuple)):
            normalized[name] = [_date_operand(item) for item in operand]
        elif name in ("mode", "contains", "startsWith", "endsWith"):
            normalized[name] = operand
        else:
            normalized[name] = _date_operand(operand)
    return normalized


def normalize_where(model: SchemaModel, where: Any) -> Any:
    """Rewrite operands on date fields into the form dates are stored in.

    ``"2024-01-01T12:00:00Z"`` and ``"2024-01-01T14:00:00+02:00"`` then match
    the same stored value. Anything that is not a date operand is left as is.
    """
    if not isinstance(where, dict):
        return where
    normalized: dict[Any, Any] = {}
    for key, condition in where.items():
        if key in ("AND", "OR", "NOT"):
            if isinstance(condition, (list, tuple)):
                normalized[key] = [normalize_where(model, sub) for sub in condition]
            else:
                normalized[key] = normalize_where(model, condition)
            continue
        spec = model.get_field(key) if isinstance(key, str) else None
        if spec is not None and spec.type == FieldType.DATE:
            normalized[key] = _normalize_date_condition(condition)
        else:
            normalized[key] = condition
    return normalized


def find_unique_index(model: SchemaModel, records: list[dict[str, Any]], where: Any) -> int | None:
    """Locate the record identified by a unique ``where``.

    ``where`` must test equality on the id field or a unique field; extra
    conditions are allowed and must also match.

    Raises:
        QueryError: If ``where`` does not name a unique field.
    """
    if not isinstance(where, dict) or not any(
        isinstance(key, str)
        and model.is_unique_key(key)
        and (not is_operator_map(value) or set(value) <= {"equals", "mode"})
        for key, value in where.items()
    ):
        raise QueryError(
            f"A unique lookup on '{model.name}' needs the id field '{model.id_field.name}' "
            "or a unique field in 'where'",
            model=model.name,
        )
    where = normalize_where(model, where)
    for index, record in enumerate(records):
        if evaluate(record, where):
            return index
    return None


def project(model: SchemaModel, record: dict[str, Any], select: dict[str, Any] | None) -> dict[str, Any]:
    """Copy a record, keeping only the selected fields when ``select`` is given."""
    if select is None:
        return copy.deepcopy(record)
    if not isinstance(select, dict):
        raise QueryError("select must be a mapping of field name to bool", model=model.name)
    unknown = [name for name in select if model.get_field(name) is None]
    if unknown:
        raise QueryError(
            f"Unknown field(s) in select for '{model.name}': {', '.join(map(str, unknown))}",
            model=model.name,
            field=str(unknown[0]),
        )
    return {name: copy.deepcopy(value) for name, value in record.items() if select.get(name)}


class QueryService:
    """Service answering find/count queries from the collection cache."""

    def __init__(self, schema: SchemaDefinition, cache: CollectionCache) -> None:
        self.schema = schema
        self.cache = cache

    async def find_many(
        self,
        model_name: str,
        where: dict[str, Any] | None = None,
        order_by: Any = None,
        skip: int | None = None,
        take: int | None = None,
        select: dict[str, bool] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every matching record, ordered and paginated."""
        model = self.schema.get_model(model_name)
        records = await self.cache.get(model_name)
        matched = apply_query(filter_records(records, normalize_where(model, where)), order_by, skip, take)
        return [project(model, record, select) for record in matched]

    async def find_first(
        self,
        model_name: str,
        where: dict[str, Any] | None = None,
        order_by: Any = None,
        skip: int | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any] | None:
        """Return the first matching record, or None."""
        found = await self.find_many(model_name, where, order_by, skip, 1, select)
        return found[0] if found else None

    async def find_unique(
        self,
        model_name: str,
        where: dict[str, Any],
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any] | None:
        """Return the record identified by the id or a unique field, or None."""
        model = self.schema.get_model(model_name)
        records = await self.cache.get(model_name)
        index = find_unique_index(model, records, where)
        if index is None:
            return None
        return project(model, records[index], select)

    async def count(self, model_name: str, where: dict[str, Any] | None = None) -> int:
        """Count matching records."""
        model = self.schema.get_model(model_name)
        records = await self.cache.get(model_name)
        where = normalize_where(model, where)
        return sum(1 for record in records if evaluate(record, where))
