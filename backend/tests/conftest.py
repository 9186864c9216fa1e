import pytest
from fastapi.testclient import TestClient

from recipe_saas.config import Settings
from recipe_saas.main import create_app

JWT_SECRET = "test-secret"


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        storage_backend="memory",
        generator_backend="template",
        jwt_secret=JWT_SECRET,
        bcrypt_rounds=4,
        rate_limit_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(app):
    return app.state.store


def register(client, email="u1@example.com", password="pw") -> dict:
    res = client.post("/api/auth/register", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def delete_user(store, user_id: str):
    """Drop a user from a MemoryStore, as an operator would in the database."""
    user = store._users.pop(user_id)
    store._emails.pop(user.email, None)


def set_tier(store, user_id: str, tier):
    store._users[user_id] = store._users[user_id].model_copy(update={"subscription_tier": tier})
