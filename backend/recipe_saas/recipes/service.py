"""
Quota-gated recipe generation.

Order matters: the quota is consumed atomically *before* the generator runs,
so concurrent requests cannot all pass a stale check. If generation or
persistence fails afterwards, the consumed generation is given back.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from recipe_saas.auth.schemas import User
from recipe_saas.errors import InternalFailure, QuotaExceeded
from recipe_saas.recipes import quota
from recipe_saas.recipes.generator import RecipeGenerator
from recipe_saas.recipes.schemas import GenerationParams, Recipe
from recipe_saas.storage.base import Store

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    recipe: Recipe
    usage: dict

    def to_response(self) -> dict:
        return {"success": True, "recipe": self.recipe.to_response(), "usage": self.usage}


async def generate_recipe_for_user(
    user: User,
    params: GenerationParams,
    *,
    store: Store,
    generator: RecipeGenerator,
    timeout: float,
) -> GenerationResult:
    """Consume one generation, produce and store a recipe, report usage.

    Raises:
        QuotaExceeded: free-tier limit reached (counter unchanged)
        InternalFailure: store or generator failed (consumed generation refunded)
    """
    try:
        count = await store.consume_generation(user.id)
    except Exception:
        logger.exception(f"Quota consumption failed for user {user.id}")
        raise InternalFailure("Recipe generation failed")

    if count is None:
        logger.info(f"Quota denied for user {user.id} ({user.subscription_tier.value})")
        raise QuotaExceeded(quota.QUOTA_MESSAGE)

    start = time.monotonic()
    try:
        generated = await asyncio.wait_for(generator.generate(params), timeout=timeout)
        recipe = await store.save_recipe(user.id, generated)
    except asyncio.CancelledError:
        logger.info(f"Recipe generation cancelled for user {user.id}")
        await _refund(store, user.id)
        raise
    except Exception:
        logger.exception(f"Recipe generation failed for user {user.id} ({generator.name})")
        await _refund(store, user.id)
        raise InternalFailure("Recipe generation failed")

    logger.info(
        f"Generated recipe {recipe.id} for user {user.id} "
        f"in {time.monotonic() - start:.2f}s ({count} used)"
    )
    return GenerationResult(recipe=recipe, usage=quota.usage_summary(user.subscription_tier, count))


async def _refund(store: Store, user_id: str):
    try:
        await store.release_generation(user_id)
    except Exception:
        logger.exception(f"Could not refund generation for user {user_id}")
