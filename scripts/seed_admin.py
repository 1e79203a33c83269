"""Seed or promote an administrator account in the configured storage backend."""

from __future__ import annotations

import os
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models.user import User
from storage import get_storage

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@resumebuilder.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")


def seed_admin(email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD, name: str = ADMIN_NAME) -> tuple[User, str]:
    """Create a verified admin, or promote and reset an existing account."""

    users = get_storage().users
    admin = users.find_by_email(email)
    if admin is None:
        admin = User(email=email.lower(), name=name, role="admin", email_verified=True)
        admin.set_password(password)
        users.add(admin)
        return admin, "created"

    def _promote(user: User) -> None:
        user.role = "admin"
        user.is_active = True
        user.email_verified = True
        user.email_verification_token = None
        user.email_verification_expires = None
        user.set_password(password)

    return users.update(admin.id, _promote), "updated"


def main() -> None:
    app = create_app()
    with app.app_context():
        admin, action = seed_admin()
        print(f"Admin user {action}: {admin.email}")


if __name__ == "__main__":
    main()
