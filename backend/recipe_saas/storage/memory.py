import asyncio
import uuid
from typing import Optional

from recipe_saas.auth.schemas import User
from recipe_saas.recipes import quota
from recipe_saas.recipes.schemas import GeneratedRecipe, Recipe
from recipe_saas.storage.base import DuplicateEmailError, Store


class MemoryStore(Store):
    """In-process store for local development and tests.

    A single asyncio.Lock serializes every write, which gives the same
    guarantees the Supabase backend gets from its unique constraint and
    conditional UPDATE. Data is lost on restart and not shared across workers.
    """

    name = "memory"

    def __init__(self):
        self._users: dict[str, User] = {}
        self._emails: dict[str, str] = {}
        self._recipes: list[Recipe] = []
        self._lock = asyncio.Lock()

    async def create_user(self, email: str, password_hash: str) -> User:
        async with self._lock:
            if email in self._emails:
                raise DuplicateEmailError(email)
            user = User(id=uuid.uuid4().hex, email=email, password_hash=password_hash)
            self._users[user.id] = user
            self._emails[email] = user.id
            return user.model_copy()

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._emails.get(email)
        return await self.get_user(user_id) if user_id else None

    async def consume_generation(self, user_id: str) -> Optional[int]:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            if not quota.allow(user.subscription_tier, user.recipes_generated):
                return None
            count = user.recipes_generated + 1
            self._users[user_id] = user.model_copy(update={"recipes_generated": count})
            return count

    async def release_generation(self, user_id: str) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            count = max(0, user.recipes_generated - 1)
            self._users[user_id] = user.model_copy(update={"recipes_generated": count})

    async def save_recipe(self, user_id: str, recipe: GeneratedRecipe) -> Recipe:
        saved = Recipe(id=uuid.uuid4().hex, user_id=user_id, **recipe.model_dump())
        async with self._lock:
            self._recipes.append(saved)
        return saved

    async def list_recipes(self, user_id: str, limit: int = 50) -> list[Recipe]:
        # Stable sort keeps insertion order for equal timestamps; reverse it so ties are newest-first too.
        owned = [r for r in reversed(self._recipes) if r.user_id == user_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return owned[:limit]

    async def get_recipe(self, user_id: str, recipe_id: str) -> Optional[Recipe]:
        for r in self._recipes:
            if r.id == recipe_id and r.user_id == user_id:
                return r
        return None
