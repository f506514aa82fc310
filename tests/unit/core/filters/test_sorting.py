import pytest

from sealdb.core.exceptions import QueryError
from sealdb.core.filters import apply_query, normalize_order_by, paginate, sort_records

PEOPLE = [
    {"id": "a", "name": "Cleo", "age": 30},
    {"id": "b", "name": "Ada", "age": 40},
    {"id": "c", "name": "Bo", "age": 30},
    {"id": "d", "name": "Dee"},
    {"id": "e", "name": "Eve", "age": None},
    {"id": "f", "name": "Fay", "age": 18},
]


def ids(records):
    return [r["id"] for r in records]


class TestNormalizeOrderBy:

    def test_mapping(self):
        assert normalize_order_by({"age": "desc", "name": "asc"}) == [("age", "desc"), ("name", "asc")]

    def test_list_of_mappings(self):
        assert normalize_order_by([{"age": "DESC"}, {"name": "asc"}]) == [("age", "desc"), ("name", "asc")]

    def test_none(self):
        assert normalize_order_by(None) == []

    @pytest.mark.parametrize("order_by", ["age", 5, [("age", "asc")], {"age": "up"}, {"age": 1}])
    def test_invalid_shapes_raise(self, order_by):
        with pytest.raises(QueryError):
            normalize_order_by(order_by)


class TestSortRecords:

    def test_ascending_puts_missing_and_null_last(self):
        assert ids(sort_records(PEOPLE, {"age": "asc"})) == ["f", "a", "c", "b", "d", "e"]

    def test_descending_puts_missing_and_null_first(self):
        assert ids(sort_records(PEOPLE, {"age": "desc"})) == ["d", "e", "b", "a", "c", "f"]

    def test_sort_is_stable(self):
        result = sort_records(PEOPLE, {"age": "asc"})
        thirties = [r["id"] for r in result if r.get("age") == 30]
        assert thirties == ["a", "c"]

    def test_secondary_key_breaks_ties(self):
        result = sort_records(PEOPLE, [{"age": "asc"}, {"name": "asc"}])
        assert ids(result)[:4] == ["f", "c", "a", "b"]

    def test_strings_sort_lexicographically(self):
        assert ids(sort_records(PEOPLE, {"name": "asc"})) == ["b", "c", "a", "d", "e", "f"]

    def test_no_order_returns_insertion_order(self):
        assert ids(sort_records(PEOPLE, None)) == ids(PEOPLE)

    def test_input_is_not_mutated(self):
        records = list(PEOPLE)
        sort_records(records, {"name": "desc"})
        assert ids(records) == ids(PEOPLE)

    def test_mixed_types_raise(self):
        with pytest.raises(QueryError) as exc_info:
            sort_records([{"v": 1}, {"v": "two"}], {"v": "asc"})
        assert exc_info.value.field == "v"

    def test_booleans_do_not_mix_with_numbers(self):
        with pytest.raises(QueryError):
            sort_records([{"v": True}, {"v": 0}], {"v": "asc"})

    def test_unorderable_values_raise(self):
        with pytest.raises(QueryError):
            sort_records([{"v": {"x": 1}}, {"v": {"x": 2}}], {"v": "asc"})

    def test_booleans_sort_false_first(self):
        records = [{"v": True}, {"v": False}]
        assert sort_records(records, {"v": "asc"}) == [{"v": False}, {"v": True}]


class TestPaginate:

    RECORDS = [{"i": i} for i in range(5)]

    def test_skip_and_take(self):
        assert paginate(self.RECORDS, skip=1, take=2) == [{"i": 1}, {"i": 2}]

    def test_take_zero(self):
        assert paginate(self.RECORDS, take=0) == []

    def test_skip_beyond_end(self):
        assert paginate(self.RECORDS, skip=10) == []

    @pytest.mark.parametrize("value", [-1, None, "2", 1.5, True])
    def test_invalid_values_are_ignored(self, value):
        assert paginate(self.RECORDS, skip=value, take=value) == self.RECORDS


def test_apply_query_sorts_before_paginating():
    result = apply_query(PEOPLE, order_by={"age": "desc"}, skip=2, take=2)
    assert ids(result) == ["b", "a"]
