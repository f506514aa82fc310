"""Ordering and pagination of record sequences."""

from typing import Any, Iterable, Mapping

from sealdb.core.exceptions import QueryError

DIRECTIONS = ("asc", "desc")


def normalize_order_by(order_by: Any) -> list[tuple[str, str]]:
    """Turn an ``order_by`` argument into ``[(field, direction), ...]``.

    Accepts ``{"age": "desc", "name": "asc"}`` (keys applied in order) or
    ``[{"age": "desc"}, {"name": "asc"}]``.

    Raises:
        QueryError: If the shape or a direction is invalid.
    """
    if order_by is None:
        return []

    if isinstance(order_by, Mapping):
        items = list(order_by.items())
    elif isinstance(order_by, (list, tuple)):
        items = []
        for entry in order_by:
            if not isinstance(entry, Mapping):
                raise QueryError(f"orderBy entries must be mappings, got {type(entry).__name__}")
            items.extend(entry.items())
    else:
        raise QueryError(f"orderBy must be a mapping or a list of mappings, got {type(order_by).__name__}")

    keys = []
    for field, direction in items:
        if not isinstance(direction, str) or direction.lower() not in DIRECTIONS:
            raise QueryError(f"Invalid sort direction {direction!r} for '{field}', use 'asc' or 'desc'", field=field)
        keys.append((field, direction.lower()))
    return keys


def _category(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _check_sortable(records: list[dict[str, Any]], field: str) -> None:
    categories = {_category(r[field]) for r in records if r.get(field) is not None}
    unorderable = categories - {"boolean", "number", "string"}
    if unorderable:
        raise QueryError(
            f"Cannot sort on '{field}': values of type {', '.join(sorted(unorderable))} are not orderable",
            field=field,
        )
    if len(categories) > 1:
        raise QueryError(
            f"Cannot sort on '{field}': mixed value types ({', '.join(sorted(categories))})",
            field=field,
        )


def sort_records(records: Iterable[dict[str, Any]], order_by: Any) -> list[dict[str, Any]]:
    """Stable multi-key sort.

    Missing and null values sort after all others ascending and before all
    others descending.

    Raises:
        QueryError: For an invalid ``order_by`` or a key holding mixed types.
    """
    result = list(records)
    keys = normalize_order_by(order_by)
    for field, _ in keys:
        _check_sortable(result, field)

    # Least significant key first; each pass is stable.
    for field, direction in reversed(keys):
        result.sort(
            key=lambda r: (False, r[field]) if r.get(field) is not None else (True, 0),
            reverse=direction == "desc",
        )
    return result


def _as_count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def paginate(records: list[dict[str, Any]], skip: Any = None, take: Any = None) -> list[dict[str, Any]]:
    """Apply ``skip`` then ``take``.

    Negative, missing or non-integer values mean "no skip" / "no limit".
    """
    start = _as_count(skip) or 0
    limit = _as_count(take)
    start = min(start, len(records))
    end = len(records) if limit is None else min(start + limit, len(records))
    return records[start:end]


def apply_query(
    records: Iterable[dict[str, Any]],
    order_by: Any = None,
    skip: Any = None,
    take: Any = None,
) -> list[dict[str, Any]]:
    """Sort then paginate a record sequence."""
    return paginate(sort_records(records, order_by), skip, take)
