"""
Recipe Router

Quota:
  Free:     5 generations total (lifetime counter on the user)
  Premium:  unlimited

A free user at the limit gets HTTP 200 with {"success": false, "error": ...}
rather than an error status, so clients can show the upgrade prompt inline.
"""

import logging

from fastapi import APIRouter, Depends, Request

from recipe_saas.auth.dependencies import require_auth
from recipe_saas.auth.schemas import User
from recipe_saas.config import Settings
from recipe_saas.dependencies import get_app_settings, get_generator, get_store
from recipe_saas.errors import InternalFailure, NotFound
from recipe_saas.middleware import limiter
from recipe_saas.recipes import quota
from recipe_saas.recipes.generator import RecipeGenerator
from recipe_saas.recipes.schemas import GenerateRequest
from recipe_saas.recipes.service import generate_recipe_for_user
from recipe_saas.storage.base import Store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate")
@limiter.limit("20/minute")
async def generate_recipe(
    request: Request,
    req: GenerateRequest,
    user: User = Depends(require_auth),
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
    generator: RecipeGenerator = Depends(get_generator),
):
    result = await generate_recipe_for_user(
        user,
        req.to_params(),
        store=store,
        generator=generator,
        timeout=settings.generator_timeout_seconds,
    )
    return result.to_response()


@router.get("/history")
async def get_recipe_history(
    user: User = Depends(require_auth),
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
):
    try:
        recipes = await store.list_recipes(user.id, limit=settings.history_limit)
    except Exception:
        logger.exception(f"Could not fetch recipe history for user {user.id}")
        raise InternalFailure("Failed to fetch recipes")
    return {"success": True, "recipes": [r.to_response() for r in recipes]}


@router.get("/usage")
async def get_usage(user: User = Depends(require_auth)):
    """Returns the caller's generation count and remaining quota."""
    tier = user.subscription_tier
    return {
        "success": True,
        "tier": tier.value,
        "usage": quota.usage_summary(tier, user.recipes_generated),
        "remaining": quota.remaining(tier, user.recipes_generated),
    }


@router.get("/{recipe_id}")
async def get_recipe_detail(
    recipe_id: str,
    user: User = Depends(require_auth),
    store: Store = Depends(get_store),
):
    try:
        recipe = await store.get_recipe(user.id, recipe_id)
    except Exception:
        logger.exception(f"Could not fetch recipe {recipe_id}")
        raise InternalFailure("Failed to fetch recipe")
    if recipe is None:
        raise NotFound("Recipe not found")
    return {"success": True, "recipe": recipe.to_response()}
