"""Filter evaluation, ordering and pagination over in-memory records."""

from .evaluator import evaluate, filter_records, is_operator_map, strict_equals
from .sorting import apply_query, normalize_order_by, paginate, sort_records

__all__ = [
    "evaluate",
    "filter_records",
    "is_operator_map",
    "strict_equals",
    "apply_query",
    "normalize_order_by",
    "paginate",
    "sort_records",
]
