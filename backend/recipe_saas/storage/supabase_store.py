"""Supabase (PostgREST) backend.

Tables and functions live in backend/sql/schema.sql. The quota rule is
duplicated there as `consume_recipe_generation`, because the check and the
increment have to happen inside one UPDATE statement.
"""

from typing import Optional

from supabase import Client, PostgrestAPIError

from recipe_saas.auth.schemas import User
from recipe_saas.recipes.quota import FREE_RECIPE_LIMIT
from recipe_saas.recipes.schemas import GeneratedRecipe, Recipe
from recipe_saas.storage.base import DuplicateEmailError, StorageError, Store

UNIQUE_VIOLATION = "23505"

USER_COLUMNS = "id, email, password_hash, subscription_tier, recipes_generated, created_at"
RECIPE_COLUMNS = (
    "id, user_id, title, ingredients, instructions, dietary_tags, "
    "cooking_time, servings, created_at"
)


def _user_from_row(row: dict) -> User:
    return User(**{**row, "id": str(row["id"])})


def _recipe_from_row(row: dict) -> Recipe:
    return Recipe(**{**row, "id": str(row["id"]), "user_id": str(row["user_id"])})


class SupabaseStore(Store):
    name = "supabase"

    def __init__(self, client: Client):
        self.sb = client

    async def create_user(self, email: str, password_hash: str) -> User:
        try:
            result = self.sb.table("users").insert({
                "email": email, "password_hash": password_hash,
                "subscription_tier": "free", "recipes_generated": 0,
            }).execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateEmailError(email) from e
            raise StorageError(f"Could not create user: {e.message}") from e
        if not result.data:
            raise StorageError("Insert returned no row")
        return _user_from_row(result.data[0])

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._one_user("id", user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return self._one_user("email", email)

    def _one_user(self, column: str, value: str) -> Optional[User]:
        try:
            result = self.sb.table("users").select(USER_COLUMNS).eq(column, value).limit(1).execute()
        except PostgrestAPIError as e:
            # Malformed UUIDs come back as invalid_text_representation; no such user.
            if e.code == "22P02":
                return None
            raise StorageError(f"Could not fetch user: {e.message}") from e
        if not result.data:
            return None
        return _user_from_row(result.data[0])

    async def consume_generation(self, user_id: str) -> Optional[int]:
        try:
            result = self.sb.rpc(
                "consume_recipe_generation",
                {"p_user_id": user_id, "p_free_limit": FREE_RECIPE_LIMIT},
            ).execute()
        except PostgrestAPIError as e:
            raise StorageError(f"Could not consume quota: {e.message}") from e
        # The function returns NULL when the conditional UPDATE matched no row.
        return result.data if isinstance(result.data, int) else None

    async def release_generation(self, user_id: str) -> None:
        try:
            self.sb.rpc("release_recipe_generation", {"p_user_id": user_id}).execute()
        except PostgrestAPIError as e:
            raise StorageError(f"Could not release quota: {e.message}") from e

    async def save_recipe(self, user_id: str, recipe: GeneratedRecipe) -> Recipe:
        try:
            result = self.sb.table("recipes").insert({"user_id": user_id, **recipe.model_dump()}).execute()
        except PostgrestAPIError as e:
            raise StorageError(f"Could not save recipe: {e.message}") from e
        if not result.data:
            raise StorageError("Insert returned no row")
        return _recipe_from_row(result.data[0])

    async def list_recipes(self, user_id: str, limit: int = 50) -> list[Recipe]:
        try:
            result = self.sb.table("recipes").select(RECIPE_COLUMNS) \
                .eq("user_id", user_id).order("created_at", desc=True).limit(limit).execute()
        except PostgrestAPIError as e:
            raise StorageError(f"Could not list recipes: {e.message}") from e
        return [_recipe_from_row(row) for row in (result.data or [])]

    async def get_recipe(self, user_id: str, recipe_id: str) -> Optional[Recipe]:
        try:
            result = self.sb.table("recipes").select(RECIPE_COLUMNS) \
                .eq("id", recipe_id).eq("user_id", user_id).limit(1).execute()
        except PostgrestAPIError as e:
            if e.code == "22P02":
                return None
            raise StorageError(f"Could not fetch recipe: {e.message}") from e
        if not result.data:
            return None
        return _recipe_from_row(result.data[0])
