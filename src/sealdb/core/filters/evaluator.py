"""Evaluator for declarative ``where`` conditions.

A condition is a mapping. Plain keys name record fields and map either to a
value (shorthand equality) or to an operator map such as
``{"gte": 18, "lt": 65}``. The logical keys ``AND``, ``OR`` and ``NOT``
compose sub-conditions. Every key of one mapping must hold (implicit AND).

Evaluation never raises: a malformed condition or operand is a non-match.
"""

from datetime import date, datetime
from typing import Any, Callable

from sealdb.core.dates import canonical_date

LOGICAL_KEYS = frozenset({"AND", "OR", "NOT"})

# Sentinel for a field that is not present in the record. Never compared
# against operands; each operator decides what absence means.
_ABSENT = object()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_operand(value: Any) -> Any:
    """Dates are stored as canonical ISO strings, so operands are compared the same way."""
    if isinstance(value, (datetime, date)):
        return canonical_date(value)
    return value


def strict_equals(left: Any, right: Any) -> bool:
    """Value equality that never equates booleans with numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(strict_equals(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(strict_equals(a, b) for a, b in zip(left, right))
    if type(left) is not type(right):
        return False
    return left == right


def _fold(value: Any, insensitive: bool) -> Any:
    if insensitive and isinstance(value, str):
        return value.casefold()
    return value


def _op_equals(value: Any, operand: Any, insensitive: bool) -> bool:
    if value is _ABSENT:
        return False
    return strict_equals(_fold(value, insensitive), _fold(_normalize_operand(operand), insensitive))


def _op_in(value: Any, operand: Any, insensitive: bool) -> bool:
    if value is _ABSENT or not isinstance(operand, (list, tuple, set, frozenset)):
        return False
    return any(_op_equals(value, item, insensitive) for item in operand)


def _op_not_in(value: Any, operand: Any, insensitive: bool) -> bool:
    if not isinstance(operand, (list, tuple, set, frozenset)):
        return False
    if value is _ABSENT:
        return True
    return not _op_in(value, operand, insensitive)


def _ordering(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any, bool], bool]:
    def op(value: Any, operand: Any, insensitive: bool) -> bool:
        if value is _ABSENT:
            return False
        operand = _normalize_operand(operand)
        if _is_number(value) and _is_number(operand):
            return compare(value, operand)
        if isinstance(value, str) and isinstance(operand, str):
            return compare(value, operand)
        return False

    return op


def _string_op(test: Callable[[str, str], bool]) -> Callable[[Any, Any, bool], bool]:
    def op(value: Any, operand: Any, insensitive: bool) -> bool:
        if not isinstance(value, str) or not isinstance(operand, str):
            return False
        return test(_fold(value, insensitive), _fold(operand, insensitive))

    return op


OPERATORS: dict[str, Callable[[Any, Any, bool], bool]] = {
    "equals": _op_equals,
    "in": _op_in,
    "notIn": _op_not_in,
    "lt": _ordering(lambda a, b: a < b),
    "lte": _ordering(lambda a, b: a <= b),
    "gt": _ordering(lambda a, b: a > b),
    "gte": _ordering(lambda a, b: a >= b),
    "contains": _string_op(lambda s, sub: sub in s),
    "startsWith": _string_op(lambda s, prefix: s.startswith(prefix)),
    "endsWith": _string_op(lambda s, suffix: s.endswith(suffix)),
}

OPERATOR_KEYS = frozenset(OPERATORS) | {"not", "mode"}


def is_operator_map(value: Any) -> bool:
    """True if ``value`` is a non-empty mapping made only of operator keys."""
    return (
        isinstance(value, dict)
        and bool(value)
        and all(isinstance(key, str) and key in OPERATOR_KEYS for key in value)
        and set(value) != {"mode"}
    )


def _evaluate_operators(value: Any, operators: dict[str, Any]) -> bool:
    insensitive = operators.get("mode") == "insensitive"
    for name, operand in operators.items():
        if name == "mode":
            continue
        if name == "not":
            if is_operator_map(operand):
                nested = dict(operand)
                if insensitive:
                    nested.setdefault("mode", "insensitive")
                matched = _evaluate_operators(value, nested)
            else:
                matched = _op_equals(value, operand, insensitive)
            if matched:
                return False
            continue
        if not OPERATORS[name](value, operand, insensitive):
            return False
    return True


def _evaluate_field(record: dict[str, Any], field: str, condition: Any) -> bool:
    value = record.get(field, _ABSENT)
    if is_operator_map(condition):
        return _evaluate_operators(value, condition)
    return _op_equals(value, condition, False)


def _sub_conditions(value: Any) -> list[dict[str, Any]] | None:
    """Operands of a logical key, or None if any of them is not a condition."""
    items = list(value) if isinstance(value, (list, tuple)) else [value]
    if not all(isinstance(item, dict) for item in items):
        return None
    return items


def evaluate(record: Any, where: Any) -> bool:
    """Decide whether ``record`` matches the ``where`` condition.

    Args:
        record: A stored record (mapping of field name to value).
        where: A condition mapping; ``None`` matches everything. Inside
            ``AND``/``OR``/``NOT`` every operand must be a mapping.

    Returns:
        True if the record matches. Never raises.
    """
    if where is None:
        return True
    if not isinstance(where, dict) or not isinstance(record, dict):
        return False

    for key, condition in where.items():
        if key in LOGICAL_KEYS:
            subs = _sub_conditions(condition)
            if subs is None:
                return False
            if key == "AND":
                matched = all(evaluate(record, sub) for sub in subs)
            elif key == "OR":
                matched = any(evaluate(record, sub) for sub in subs)
            else:
                matched = not any(evaluate(record, sub) for sub in subs)
            if not matched:
                return False
        elif not isinstance(key, str) or not _evaluate_field(record, key, condition):
            return False
    return True


def filter_records(records: list[dict[str, Any]], where: Any) -> list[dict[str, Any]]:
    """Return the records matching ``where``, preserving collection order."""
    return [record for record in records if evaluate(record, where)]
