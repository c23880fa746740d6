"""
Create tables (dev/sqlite convenience) and seed the admin login.

Usage:
  python scripts/init_db.py            # create_all + seed
  python scripts/init_db.py --seed-only
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.models import Base, User  # noqa: E402


def _database_url(database_url: str | None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()


def create_script_engine(db_url: str) -> Engine:
    return create_engine(db_url, future=True, pool_pre_ping=True)


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    engine = create_script_engine(db_url)
    try:
        with Session(engine, expire_on_commit=False) as s, s.begin():
            yield s
    finally:
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_username = (os.environ.get("ADMIN_USERNAME") or "admin").strip()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    with script_session(_database_url(database_url)) as s:
        user = s.scalars(select(User).where(User.username == admin_username)).one_or_none()
        if user is None:
            s.add(User(username=admin_username, password_hash=generate_password_hash(admin_password), is_active=True))
            print(f"Created admin user '{admin_username}'.", flush=True)
        else:
            print(f"Admin user '{admin_username}' already exists; password left unchanged.", flush=True)


def create_tables(*, database_url: str | None = None) -> None:
    engine = create_script_engine(_database_url(database_url))
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed-only", action="store_true", help="skip create_all (tables managed by alembic)")
    args = parser.parse_args()
    if not args.seed_only:
        create_tables()
    seed_only()


if __name__ == "__main__":
    main()
