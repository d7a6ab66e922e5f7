import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"

import pytest
from fastapi.testclient import TestClient

from usermgr.api import create_app
from usermgr.schemas import UserCreate
from usermgr.store import Store


@pytest.fixture
def store():
    """Provide an isolated in-memory store for each test."""
    return Store.from_url("sqlite://")


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as test_client:
        yield test_client


@pytest.fixture
def make_user(store):
    counter = {"n": 0}

    def _make_user(**overrides):
        counter["n"] += 1
        fields = {
            "nom": "Dubois",
            "prenoms": "Marie",
            "email": f"user{counter['n']}@example.com",
            "password": "secret1",
            "role": "user",
        }
        fields.update(overrides)
        return store.create_user(UserCreate(**fields))

    return _make_user


@pytest.fixture
def register(client):
    """Register through the API and return the user payload and auth headers."""

    def _register(email, role="user", password="secret1", nom="Blami", prenoms="Angenor"):
        resp = client.post(
            "/api/auth/register",
            json={"nom": nom, "prenoms": prenoms, "email": email, "password": password, "role": role},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register
