"""Create the first admin account and print its API key."""
from __future__ import annotations

import argparse
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from freelancehub.config import get_settings
from freelancehub.core.logging import setup_logging
from freelancehub.db import get_sessionmaker, init_engine
from freelancehub.models.api_key import ApiKey
from freelancehub.models.user import User, UserRole
from freelancehub.schemas.user import UserCreate
from freelancehub.services import users as user_service

logger = logging.getLogger(__name__)


def create_admin(db: Session, *, username: str, email: str, key_name: str = "bootstrap-admin") -> tuple[ApiKey, str]:
    """Create (or reuse) the admin user and issue it a fresh key."""

    user = db.scalars(select(User).where(User.username == username)).first()
    if user is None:
        user = user_service.create_user(
            db, UserCreate(username=username, email=email, role=UserRole.ADMIN), actor="bootstrap"
        )
    elif user.role != UserRole.ADMIN:
        raise ValueError(f"User {username!r} exists and is not an admin")
    return user_service.issue_api_key(db, user, name=key_name, actor="bootstrap")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--key-name", default="bootstrap-admin")
    args = parser.parse_args(argv)

    setup_logging(get_settings().LOG_LEVEL)
    init_engine()
    db = get_sessionmaker()()
    try:
        row, raw = create_admin(db, username=args.username, email=args.email, key_name=args.key_name)
        logger.info("Admin API key created", extra={"api_key_id": row.id, "user_id": row.user_id})
        print("Use this key in your Authorization header:")
        print(f"    Authorization: Bearer {raw}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
