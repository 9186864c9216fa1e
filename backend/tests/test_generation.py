import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from conftest import make_settings
from recipe_saas.errors import InternalFailure, QuotaExceeded
from recipe_saas.main import create_app
from recipe_saas.recipes.generator import (
    GenerationError,
    OpenAIRecipeGenerator,
    TemplateRecipeGenerator,
)
from recipe_saas.recipes.schemas import GeneratedRecipe, GenerateRequest
from recipe_saas.recipes.service import generate_recipe_for_user
from recipe_saas.storage.memory import MemoryStore


class SlowGenerator(TemplateRecipeGenerator):
    name = "slow"

    def __init__(self, delay: float):
        self.delay = delay

    async def generate(self, params):
        await asyncio.sleep(self.delay)
        return await super().generate(params)


class BrokenGenerator:
    name = "broken"

    async def generate(self, params):
        raise RuntimeError("upstream exploded")


class BrokenSaveStore(MemoryStore):
    async def save_recipe(self, user_id, recipe):
        raise RuntimeError("disk full")


def _params(**body):
    body.setdefault("ingredients", ["egg", "rice"])
    return GenerateRequest(**body).to_params()


OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(parsed=None, refusal=None, usage=None):
    message = SimpleNamespace(parsed=parsed, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def _openai_generator(result):
    """OpenAI generator whose client returns `result`, or raises it if it is an exception."""
    calls = []

    async def parse(**kwargs):
        calls.append(kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    client = SimpleNamespace(beta=SimpleNamespace(chat=SimpleNamespace(
        completions=SimpleNamespace(parse=parse),
    )))
    return OpenAIRecipeGenerator(make_settings(openai_api_key="sk-test"), client=client), calls


@pytest.mark.asyncio
async def test_template_generator_uses_params():
    recipe = await TemplateRecipeGenerator().generate(_params(servings=6))
    assert recipe.title == "Recipe with egg, rice"
    assert recipe.ingredients == ["egg - 2 cups", "rice - 2 cups"]
    assert recipe.servings == 6
    assert recipe.cooking_time == 30
    assert recipe.dietary_tags == ["balanced"]


@pytest.mark.asyncio
async def test_service_success_reports_usage():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    result = await generate_recipe_for_user(
        user, _params(), store=store, generator=TemplateRecipeGenerator(), timeout=1.0,
    )
    assert result.usage == {"generatedThisMonth": 1, "limit": 5}
    assert result.recipe.user_id == user.id
    assert await store.list_recipes(user.id) == [result.recipe]


@pytest.mark.asyncio
async def test_service_denial_does_not_touch_counter():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    for _ in range(5):
        await store.consume_generation(user.id)

    with pytest.raises(QuotaExceeded):
        await generate_recipe_for_user(
            user, _params(), store=store, generator=TemplateRecipeGenerator(), timeout=1.0,
        )
    assert (await store.get_user(user.id)).recipes_generated == 5


@pytest.mark.asyncio
async def test_generator_failure_refunds_quota():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    with pytest.raises(InternalFailure) as exc:
        await generate_recipe_for_user(
            user, _params(), store=store, generator=BrokenGenerator(), timeout=1.0,
        )
    assert exc.value.message == "Recipe generation failed"
    assert (await store.get_user(user.id)).recipes_generated == 0
    assert await store.list_recipes(user.id) == []


@pytest.mark.asyncio
async def test_generator_timeout_refunds_quota():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    with pytest.raises(InternalFailure):
        await generate_recipe_for_user(
            user, _params(), store=store, generator=SlowGenerator(delay=1.0), timeout=0.05,
        )
    assert (await store.get_user(user.id)).recipes_generated == 0


@pytest.mark.asyncio
async def test_save_failure_refunds_quota():
    store = BrokenSaveStore()
    user = await store.create_user("a@example.com", "hash")
    with pytest.raises(InternalFailure):
        await generate_recipe_for_user(
            user, _params(), store=store, generator=TemplateRecipeGenerator(), timeout=1.0,
        )
    assert (await store.get_user(user.id)).recipes_generated == 0


@pytest.mark.asyncio
async def test_generation_failure_is_generic_500():
    app = create_app(make_settings())
    app.state.generator = BrokenGenerator()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        token = (await client.post(
            "/api/auth/register", json={"email": "u1@example.com", "password": "pw"},
        )).json()["token"]
        res = await client.post(
            "/api/recipes/generate",
            json={"ingredients": ["egg"]},
            headers={"Authorization": f"Bearer {token}"},
        )
    assert res.status_code == 500
    assert res.json() == {"error": "Recipe generation failed"}


@pytest.mark.asyncio
async def test_parallel_requests_at_limit_allow_exactly_one():
    app = create_app(make_settings())
    app.state.generator = SlowGenerator(delay=0.05)
    store = app.state.store
    transport = httpx.ASGITransport(app=app)

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        data = (await client.post(
            "/api/auth/register", json={"email": "u1@example.com", "password": "pw"},
        )).json()
        user_id = data["user"]["id"]
        for _ in range(4):
            await store.consume_generation(user_id)

        headers = {"Authorization": f"Bearer {data['token']}"}
        responses = await asyncio.gather(*[
            client.post("/api/recipes/generate", json={"ingredients": ["egg"]}, headers=headers)
            for _ in range(10)
        ])

    bodies = [r.json() for r in responses]
    assert all(r.status_code == 200 for r in responses)
    assert sum(1 for b in bodies if b["success"]) == 1
    assert sum(1 for b in bodies if b["success"] is False) == 9
    assert (await store.get_user(user_id)).recipes_generated == 5
    assert len(await store.list_recipes(user_id)) == 1


@pytest.mark.asyncio
async def test_openai_generator_keeps_caller_options():
    model_recipe = GeneratedRecipe(
        title="Tofu stir-fry",
        ingredients=["tofu - 400 g"],
        instructions=["1. Fry the tofu"],
        dietary_tags=["high-protein"],
        cooking_time=45,
        servings=3,
    )
    generator, calls = _openai_generator(
        _completion(parsed=model_recipe, usage=SimpleNamespace(total_tokens=321)),
    )
    params = _params(ingredients=["tofu"], dietaryPreferences=["vegan"], cookingTime=15, servings=2)

    recipe = await generator.generate(params)

    assert recipe.title == "Tofu stir-fry"
    assert recipe.ingredients == ["tofu - 400 g"]
    assert recipe.dietary_tags == ["vegan"]
    assert recipe.cooking_time == 15
    assert recipe.servings == 2
    assert calls[0]["response_format"] is GeneratedRecipe
    assert "<ingredients>tofu</ingredients>" in calls[0]["messages"][1]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("completion", [
    _completion(refusal="I can't help with that."),
    _completion(parsed=None),
])
async def test_openai_generator_without_recipe_raises(completion):
    generator, _ = _openai_generator(completion)
    with pytest.raises(GenerationError, match="no recipe"):
        await generator.generate(_params())


@pytest.mark.asyncio
@pytest.mark.parametrize("error, message", [
    (openai.RateLimitError(
        "rate limited", response=httpx.Response(429, request=OPENAI_REQUEST), body=None,
    ), "busy"),
    (openai.APIError("upstream failure", OPENAI_REQUEST, body=None), "AI service error"),
    (openai.APITimeoutError(request=OPENAI_REQUEST), "AI service error"),
])
async def test_openai_client_errors_become_generation_errors(error, message):
    generator, _ = _openai_generator(error)
    with pytest.raises(GenerationError, match=message):
        await generator.generate(_params())


@pytest.mark.asyncio
async def test_openai_failure_refunds_quota():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    generator, _ = _openai_generator(openai.APIError("upstream failure", OPENAI_REQUEST, body=None))

    with pytest.raises(InternalFailure):
        await generate_recipe_for_user(user, _params(), store=store, generator=generator, timeout=1.0)
    assert (await store.get_user(user.id)).recipes_generated == 0
    assert await store.list_recipes(user.id) == []


@pytest.mark.asyncio
async def test_cancelled_generation_refunds_quota():
    store = MemoryStore()
    user = await store.create_user("a@example.com", "hash")
    task = asyncio.create_task(generate_recipe_for_user(
        user, _params(), store=store, generator=SlowGenerator(delay=10), timeout=30,
    ))
    await asyncio.sleep(0.05)
    assert (await store.get_user(user.id)).recipes_generated == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert (await store.get_user(user.id)).recipes_generated == 0
