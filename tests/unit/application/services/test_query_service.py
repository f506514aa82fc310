from unittest.mock import AsyncMock

import pytest

from sealdb.application.services.query_service import QueryService, find_unique_index, normalize_where, project
from sealdb.core.exceptions import QueryError, SchemaError
from sealdb.infrastructure.persistence.collection_cache import CollectionCache

USERS = [
    {"id": "u1", "email": "ada@example.com", "age": 36, "role": "admin"},
    {"id": "u2", "email": "bo@example.com", "age": 17, "role": "member"},
    {"id": "u3", "email": "cy@example.com", "age": 52, "role": "member"},
    {"id": "u4", "email": "di@example.com", "role": "member"},
]


@pytest.fixture
def store():
    mock_store = AsyncMock()
    mock_store.load.side_effect = lambda model_name: [dict(r) for r in USERS] if model_name == "User" else []
    return mock_store


@pytest.fixture
def queries(schema, store):
    return QueryService(schema, CollectionCache(store))


def ids(records):
    return [r["id"] for r in records]


class TestFindMany:

    @pytest.mark.asyncio
    async def test_without_arguments_returns_everything_in_insertion_order(self, queries):
        assert ids(await queries.find_many("User")) == ["u1", "u2", "u3", "u4"]

    @pytest.mark.asyncio
    async def test_filter_order_and_take(self, queries):
        result = await queries.find_many("User", where={"age": {"gte": 18}}, order_by={"age": "desc"}, take=1)
        assert ids(result) == ["u3"]

    @pytest.mark.asyncio
    async def test_skip(self, queries):
        result = await queries.find_many("User", order_by={"age": "asc"}, skip=1)
        assert ids(result) == ["u1", "u3", "u4"]

    @pytest.mark.asyncio
    async def test_select(self, queries):
        result = await queries.find_many("User", where={"id": "u1"}, select={"email": True, "age": False})
        assert result == [{"email": "ada@example.com"}]

    @pytest.mark.asyncio
    async def test_select_unknown_field(self, queries):
        with pytest.raises(QueryError):
            await queries.find_many("User", select={"password": True})

    @pytest.mark.asyncio
    async def test_results_are_copies(self, queries):
        first = await queries.find_many("User")
        first[0]["email"] = "changed"

        again = await queries.find_many("User")
        assert again[0]["email"] == "ada@example.com"

    @pytest.mark.asyncio
    async def test_queries_never_persist(self, queries, store):
        await queries.find_many("User", where={"role": "member"})
        await queries.count("User")
        store.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_model(self, queries):
        with pytest.raises(SchemaError):
            await queries.find_many("Comment")


class TestFindFirstAndUnique:

    @pytest.mark.asyncio
    async def test_find_first(self, queries):
        record = await queries.find_first("User", where={"role": "member"}, order_by={"age": "desc"})
        assert record["id"] == "u4"

    @pytest.mark.asyncio
    async def test_find_first_without_match(self, queries):
        assert await queries.find_first("User", where={"role": "owner"}) is None

    @pytest.mark.asyncio
    async def test_find_unique_by_id_and_unique_field(self, queries):
        assert (await queries.find_unique("User", where={"id": "u2"}))["email"] == "bo@example.com"
        assert (await queries.find_unique("User", where={"email": {"equals": "cy@example.com"}}))["id"] == "u3"

    @pytest.mark.asyncio
    async def test_find_unique_miss_is_none(self, queries):
        assert await queries.find_unique("User", where={"id": "nope"}) is None

    @pytest.mark.asyncio
    async def test_find_unique_rejects_non_unique_where(self, queries):
        with pytest.raises(QueryError):
            await queries.find_unique("User", where={"role": "member"})


class TestCount:

    @pytest.mark.asyncio
    async def test_count(self, queries):
        assert await queries.count("User") == 4
        assert await queries.count("User", where={"role": "member"}) == 3
        assert await queries.count("User", where={"age": {"lt": 0}}) == 0

    @pytest.mark.asyncio
    async def test_count_of_empty_collection(self, queries):
        assert await queries.count("Post") == 0


def test_find_unique_index_allows_extra_conditions(schema):
    model = schema.get_model("User")
    assert find_unique_index(model, USERS, {"id": "u1", "role": "admin"}) == 0
    assert find_unique_index(model, USERS, {"id": "u1", "role": "member"}) is None


def test_project_without_select_deep_copies(schema):
    record = {"id": "p1", "title": "T", "tags": ["a"]}
    copied = project(schema.get_model("Post"), record, None)
    copied["tags"].append("b")
    assert record["tags"] == ["a"]


def test_normalize_where_rewrites_date_operands(schema):
    post = schema.get_model("Post")
    where = {
        "publishedAt": {"gt": "2024-01-01T06:00:00Z", "in": ["2024-01-01T10:00:00+05:00"], "not": None},
        "OR": [{"publishedAt": "2024-01-01T12:00:00Z"}, {"title": "2024-01-01T12:00:00Z"}],
    }

    assert normalize_where(post, where) == {
        "publishedAt": {
            "gt": "2024-01-01T06:00:00+00:00",
            "in": ["2024-01-01T05:00:00+00:00"],
            "not": None,
        },
        "OR": [{"publishedAt": "2024-01-01T12:00:00+00:00"}, {"title": "2024-01-01T12:00:00Z"}],
    }


def test_normalize_where_leaves_unparseable_operands(schema):
    post = schema.get_model("Post")
    where = {"publishedAt": {"startsWith": "2024-01"}, "OR": None, "tags": ["x"]}

    assert normalize_where(post, where) == where
    assert normalize_where(post, None) is None
    assert normalize_where(post, {"publishedAt": "soon"}) == {"publishedAt": "soon"}
