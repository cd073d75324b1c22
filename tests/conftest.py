import os
import sys
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

# Ensure env is set before anything imports db.py / routers.auth
_DB_DIR = tempfile.mkdtemp(prefix="skillswap-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_DEBUG"] = "true"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "admin-password"

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


@pytest.fixture(scope="session")
def app():
    from main import app as fastapi_app
    return fastapi_app


@pytest.fixture()
def client(app) -> Iterator[TestClient]:
    from db import engine

    # Fresh tables per test; startup seeds the admin again
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with TestClient(app) as tc:
        yield tc


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client):
    """Factory: register a user and return (user_json, headers)."""
    counter = {"n": 0}

    def _register(name: str = None, **fields):
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        payload = {
            "name": name,
            "email": f"{name.lower().replace(' ', '.')}@example.com",
            "password": "secret123",
            **fields,
        }
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data["user"], auth_headers(data["token"])

    return _register


@pytest.fixture()
def admin_headers(client) -> dict:
    resp = client.post(
        "/api/admin/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    return auth_headers(resp.json()["token"])
