"""Tests for the out-of-band admin seeding."""

import pytest
from sqlmodel import Session, select

from db import engine
from models import User
from routers.auth import verify_password
from seed_admin import main, seed_admin


def test_startup_seeds_admin_from_env(client):
    with Session(engine) as session:
        admin = session.exec(select(User).where(User.email == "admin@example.com")).one()
    assert admin.is_admin
    assert not admin.is_public


def test_existing_password_is_not_reset(client):
    with Session(engine) as session:
        seed_admin(session, "admin@example.com", "a-different-password")
        admin = session.exec(select(User).where(User.email == "admin@example.com")).one()
        assert verify_password("admin-password", admin.password_hash)

        seed_admin(session, "admin@example.com", "a-different-password", reset_password=True)
        session.refresh(admin)
        assert verify_password("a-different-password", admin.password_hash)


def test_promotes_existing_user(client, register):
    user, _ = register("Ana")
    with Session(engine) as session:
        promoted = seed_admin(session, user["email"], "whatever-123")
        assert promoted.id == user["id"]
        assert promoted.is_admin


def test_rejects_weak_password_and_bad_email(client):
    with Session(engine) as session:
        with pytest.raises(ValueError, match="at least 6"):
            seed_admin(session, "new-admin@example.com", "123")
        with pytest.raises(ValueError):
            seed_admin(session, "not-an-email", "long-enough")


def test_cli_creates_admin(client, capsys):
    assert main(["--email", "ops@example.com", "--password", "ops-password"]) == 0
    assert "ops@example.com" in capsys.readouterr().out

    login = client.post("/api/admin/login", json={"email": "ops@example.com", "password": "ops-password"})
    assert login.status_code == 200
    assert login.json()["is_admin"] is True
