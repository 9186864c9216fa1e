"""Request-scoped access to the objects `create_app` builds once at startup."""

from fastapi import Request

from recipe_saas.config import Settings
from recipe_saas.recipes.generator import RecipeGenerator
from recipe_saas.storage.base import Store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_generator(request: Request) -> RecipeGenerator:
    return request.app.state.generator
