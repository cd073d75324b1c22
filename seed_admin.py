#!/usr/bin/env python3
"""
Provision the administrator account out of band.

    python seed_admin.py --email admin@example.com --password '<secret>'

The app also runs this on startup when ADMIN_EMAIL and ADMIN_PASSWORD are set.
An existing account is promoted to admin; its password is only replaced
with --reset-password.
"""
import argparse
import logging
import os
import sys
from typing import Optional

from pydantic import EmailStr, TypeAdapter
from sqlmodel import Session, select

from db import create_db_and_tables, engine
from models import User
from routers.auth import hash_password

logger = logging.getLogger("SkillSwap.seed")

MIN_PASSWORD_LENGTH = 6


def seed_admin(
    session: Session,
    email: str,
    password: str,
    name: str = "Admin",
    reset_password: bool = False,
) -> User:
    email = TypeAdapter(EmailStr).validate_python(email)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Admin password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = session.exec(select(User).where(User.email == email)).first()
    if user is None:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            is_admin=True,
            is_public=False,
        )
        logger.info("Created admin user %s", email)
    else:
        user.is_admin = True
        user.is_banned = False
        if reset_password:
            user.password_hash = hash_password(password)
        logger.info("Admin user %s already exists; ensured admin flag", email)

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def seed_admin_from_env() -> Optional[User]:
    """Seed from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME, if configured."""
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping admin seed")
        return None

    with Session(engine) as session:
        return seed_admin(session, email, password, name=os.getenv("ADMIN_NAME", "Admin"))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote the SkillSwap administrator.")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"), required=not os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"), required=not os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Admin"))
    parser.add_argument("--reset-password", action="store_true",
                        help="overwrite the password of an existing account")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = seed_admin(session, args.email, args.password, args.name, args.reset_password)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    print(f"Admin account ready: {user.email} (id={user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
