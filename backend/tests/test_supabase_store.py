"""SupabaseStore against a fake PostgREST client: checks row mapping and error translation."""

from types import SimpleNamespace

import pytest
from supabase import PostgrestAPIError

from recipe_saas.recipes.quota import FREE_RECIPE_LIMIT
from recipe_saas.storage.base import DuplicateEmailError, StorageError
from recipe_saas.storage.supabase_store import SupabaseStore

USER_ROW = {
    "id": "7f6c1e1a-0000-4000-8000-000000000001",
    "email": "a@example.com",
    "password_hash": "hash",
    "subscription_tier": "free",
    "recipes_generated": 2,
    "created_at": "2025-01-01T00:00:00+00:00",
}


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def chain(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return chain

    def execute(self):
        self.client.queries.append((self.table, self.calls))
        if self.client.error:
            raise self.client.error
        return SimpleNamespace(data=self.client.data)


class FakeClient:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.queries = []
        self.rpcs = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, fn, params):
        self.rpcs.append((fn, params))
        return FakeQuery(self, fn)


@pytest.mark.asyncio
async def test_create_user_maps_unique_violation():
    client = FakeClient(error=PostgrestAPIError({"code": "23505", "message": "duplicate key"}))
    with pytest.raises(DuplicateEmailError):
        await SupabaseStore(client).create_user("a@example.com", "hash")


@pytest.mark.asyncio
async def test_create_user_other_errors_are_storage_errors():
    client = FakeClient(error=PostgrestAPIError({"code": "08006", "message": "connection failure"}))
    with pytest.raises(StorageError) as exc:
        await SupabaseStore(client).create_user("a@example.com", "hash")
    assert not isinstance(exc.value, DuplicateEmailError)


@pytest.mark.asyncio
async def test_get_user_maps_row():
    user = await SupabaseStore(FakeClient(data=[USER_ROW])).get_user(USER_ROW["id"])
    assert user.email == "a@example.com"
    assert user.recipes_generated == 2
    assert user.subscription_tier.value == "free"


@pytest.mark.asyncio
async def test_get_user_malformed_id_is_missing():
    client = FakeClient(error=PostgrestAPIError({"code": "22P02", "message": "invalid input syntax for type uuid"}))
    assert await SupabaseStore(client).get_user("not-a-uuid") is None


@pytest.mark.asyncio
async def test_consume_calls_conditional_rpc():
    client = FakeClient(data=3)
    assert await SupabaseStore(client).consume_generation(USER_ROW["id"]) == 3
    assert client.rpcs == [
        ("consume_recipe_generation", {"p_user_id": USER_ROW["id"], "p_free_limit": FREE_RECIPE_LIMIT}),
    ]


@pytest.mark.asyncio
async def test_consume_null_result_is_denial():
    assert await SupabaseStore(FakeClient(data=None)).consume_generation(USER_ROW["id"]) is None


@pytest.mark.asyncio
async def test_list_recipes_orders_newest_first():
    row = {
        "id": "r1", "user_id": USER_ROW["id"], "title": "Soup", "ingredients": ["water"],
        "instructions": ["boil"], "dietary_tags": ["balanced"], "cooking_time": 30,
        "servings": 4, "created_at": "2025-01-01T00:00:00+00:00",
    }
    client = FakeClient(data=[row])
    recipes = await SupabaseStore(client).list_recipes(USER_ROW["id"], limit=10)
    assert recipes[0].title == "Soup"
    table, calls = client.queries[0]
    assert table == "recipes"
    assert ("order", ("created_at",), {"desc": True}) in calls
    assert ("limit", (10,), {}) in calls
