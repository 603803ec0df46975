#!/usr/bin/env python3
"""Create a persisted ADMIN user if none exists yet.

Usage:
    python scripts/seed_admin.py --username sysadmin --name "System Administrator"
    (password read from --password or the SEED_ADMIN_PASSWORD env var)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy.engine import Engine  # noqa: E402
from sqlmodel import Session, select  # noqa: E402

from app.config import settings  # noqa: E402
from app.db.database import create_db_and_tables, engine  # noqa: E402
from app.models.user import User  # noqa: E402
from app.security.passwords import MIN_PASSWORD_LENGTH, hash_password  # noqa: E402

logger = logging.getLogger("seed_admin")

DEFAULT_USERNAME = "sysadmin"


def seed_admin(username: str, name: str, password: str, bind: Engine | None = None) -> User | None:
    """Insert the admin account. Returns None if an ADMIN already exists."""
    if username == settings.admin_username:
        # logins with this name never reach the user table
        raise SystemExit(f"Username {username!r} is reserved for the built-in admin")
    bind = bind or engine
    create_db_and_tables(bind)
    with Session(bind) as session:
        existing = session.exec(select(User).where(User.role == "ADMIN")).first()
        if existing is not None:
            logger.info("Admin user already exists (%s). Skipping.", existing.username)
            return None
        if session.exec(select(User).where(User.username == username)).first() is not None:
            raise SystemExit(f"Username {username!r} is taken by a non-admin user")

        admin = User(username=username, name=name, password_hash=hash_password(password), role="ADMIN")
        session.add(admin)
        session.commit()
        session.refresh(admin)
        session.expunge(admin)

    logger.info("Created admin user %s (id=%s). Change the password after first login.", admin.username, admin.id)
    return admin


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--username", default=DEFAULT_USERNAME)
    parser.add_argument("--name", default="System Administrator")
    parser.add_argument("--password", default=os.environ.get("SEED_ADMIN_PASSWORD", ""))
    args = parser.parse_args()

    if len(args.password) < MIN_PASSWORD_LENGTH:
        parser.error(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    seed_admin(args.username, args.name, args.password)


if __name__ == "__main__":
    main()
