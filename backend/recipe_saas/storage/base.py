"""Store interface shared by the memory and Supabase backends.

Depend on this interface, not on a concrete backend. Quota accounting goes
through `consume_generation`/`release_generation` only, which each backend
implements as a single atomic update.
"""

from abc import ABC, abstractmethod
from typing import Optional

from recipe_saas.auth.schemas import User
from recipe_saas.recipes.schemas import GeneratedRecipe, Recipe


class StorageError(Exception):
    """Raised when the backing store fails."""


class DuplicateEmailError(StorageError):
    """Raised when inserting a user whose email is already taken."""


class Store(ABC):
    name: str = "base"

    # Users

    @abstractmethod
    async def create_user(self, email: str, password_hash: str) -> User:
        """Insert a free-tier user with a zero counter.

        Raises:
            DuplicateEmailError: the email is already registered
        """

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def consume_generation(self, user_id: str) -> Optional[int]:
        """Atomically check the quota and increment the user's counter by one.

        Returns:
            The new counter value, or None if the quota denies it (counter untouched)
        """

    @abstractmethod
    async def release_generation(self, user_id: str) -> None:
        """Give back one consumed generation, never going below zero."""

    # Recipes

    @abstractmethod
    async def save_recipe(self, user_id: str, recipe: GeneratedRecipe) -> Recipe:
        pass

    @abstractmethod
    async def list_recipes(self, user_id: str, limit: int = 50) -> list[Recipe]:
        """Recipes owned by `user_id`, newest first."""

    @abstractmethod
    async def get_recipe(self, user_id: str, recipe_id: str) -> Optional[Recipe]:
        """A recipe by id, only if owned by `user_id`."""
