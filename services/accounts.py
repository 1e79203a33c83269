"""User account lifecycle: registration, login, email verification, updates."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from flask_jwt_extended import create_access_token
from werkzeug.exceptions import BadRequest, Conflict, Forbidden, InternalServerError, NotFound, Unauthorized

from models.user import ROLES, User
from services import analytics, mailer
from storage import get_storage
from utils.errors import VerificationRequired
from utils.request_validation import normalize_email, validate_email, validate_name, validate_password

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "email", "password")
ADMIN_FIELDS = ("role", "is_active")


def generate_verification_token() -> str:
    return secrets.token_hex(32)


def token_expiry(hours: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) + timedelta(hours=hours)


def issue_access_token(user: User) -> str:
    """Return a signed session token; lifetime comes from JWT_ACCESS_TOKEN_EXPIRES."""

    return create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role, "stamp": user.token_stamp},
    )


def issue_verification_token(user: User, hours: Optional[int] = None) -> str:
    """Store a fresh single-use verification token for ``user`` and return it."""

    if hours is None:
        hours = current_app.config.get("VERIFICATION_TOKEN_HOURS", 24)
    token = generate_verification_token()
    expires = token_expiry(hours)
    if get_storage().users.update(user.id, lambda fresh: fresh.set_verification_token(token, expires)) is None:
        raise NotFound("User not found.")
    return token


def register_user(email: str, password: str, name: str, role: str = "user") -> User:
    """Create an account and send its verification email.

    A failed email send is logged and does not undo the registration; the user
    can ask for a new link through ``resend_verification``.
    """

    users = get_storage().users
    email = normalize_email(email)
    if users.find_by_email(email) is not None:
        raise Conflict(
            "An account with this email already exists. "
            "Please use a different email or try logging in."
        )

    user = User(email=email, name=name, role=role)
    user.set_password(password)
    users.add(user)

    token = issue_verification_token(user)
    try:
        mailer.send_verification_email(user, token)
    except mailer.MailDeliveryError:
        logger.warning("Verification email to %s was not sent; registration kept", email)

    analytics.track_event(
        "auth", "register", user_id=user.id, metadata={"email": email, "name": name}
    )
    return user


def authenticate(email: str, password: str) -> User:
    users = get_storage().users
    user = users.find_by_email(normalize_email(email))
    if user is None or not user.is_active or not user.check_password(password):
        raise Unauthorized("Invalid email or password.")

    if not user.email_verified:
        raise VerificationRequired(
            "Please verify your email address before logging in. "
            "Check your email for verification link.",
            status=401,
        )

    user = users.update(user.id, lambda fresh: fresh.touch_login())
    if user is None:
        raise Unauthorized("Invalid email or password.")
    analytics.track_event("auth", "login", user_id=user.id, metadata={"email": user.email})
    return user


def verify_email(token: str, now: Optional[datetime] = None) -> Optional[User]:
    """Consume a verification token; return the verified user or ``None``."""

    users = get_storage().users
    user = users.find_by_verification_token(token)
    if user is None:
        return None

    def _consume(fresh: User) -> bool:
        # Another request may have used the token since it was looked up.
        if not token or fresh.email_verification_token != token:
            return False
        return fresh.consume_verification_token(now)

    user = users.update(user.id, _consume)
    if user is None:
        return None
    analytics.track_event("auth", "verify_email", user_id=user.id)
    return user


def resend_verification(email: str) -> User:
    user = get_storage().users.find_by_email(normalize_email(email))
    if user is None:
        raise NotFound("User not found.")
    if user.email_verified:
        raise BadRequest("Email is already verified.")

    token = issue_verification_token(user)
    try:
        mailer.send_verification_email(user, token)
    except mailer.MailDeliveryError as exc:
        raise InternalServerError("Failed to send verification email.") from exc
    return user


def _normalize_role(value: object) -> str:
    return str(value or "").strip().lower()


def update_profile(user: User, fields: dict, *, allow_admin_fields: bool = False) -> User:
    """Apply a partial update; keys missing from ``fields`` are left untouched."""

    users = get_storage().users
    changes: dict = {}

    if "name" in fields:
        changes["name"] = validate_name(fields["name"])
    if "email" in fields:
        changes["email"] = validate_email(fields["email"])
    password = validate_password(fields["password"]) if "password" in fields else None

    if allow_admin_fields:
        if "role" in fields:
            role = _normalize_role(fields["role"])
            if role not in ROLES:
                raise BadRequest("Role must be user or admin.")
            changes["role"] = role
        if "is_active" in fields:
            if not isinstance(fields["is_active"], bool):
                raise BadRequest("is_active must be a boolean.")
            changes["is_active"] = fields["is_active"]

    if not changes and password is None:
        return user

    def _apply(fresh: User) -> None:
        email = changes.get("email")
        if email is not None and email != fresh.email:
            existing = users.find_by_email(email)
            if existing is not None and existing.id != fresh.id:
                raise Conflict("A user with that email already exists.")
        for key, value in changes.items():
            setattr(fresh, key, value)
        if password is not None:
            fresh.set_password(password)
        fresh.updated_at = datetime.utcnow()

    updated = users.update(user.id, _apply)
    if updated is None:
        raise NotFound("User not found.")
    return updated


def delete_user(actor: User, user: User) -> None:
    if actor.id == user.id:
        raise BadRequest("Cannot delete your own account.")
    if not get_storage().users.delete(user):
        raise NotFound("User not found.")
    analytics.track_event("admin", "delete_user", user_id=actor.id, metadata={"deleted_user_id": user.id})


def get_user_or_404(user_id: int) -> User:
    user = get_storage().users.get(user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def require_not_self_demotion(actor: User, user: User, fields: dict) -> None:
    if actor.id != user.id:
        return
    role = fields.get("role")
    if (role is not None and _normalize_role(role) != "admin") or fields.get("is_active") is False:
        raise Forbidden("Admins cannot demote or deactivate themselves.")


def user_stats(now: Optional[datetime] = None) -> dict:
    users = get_storage().users
    today = (now or datetime.utcnow()).date()
    total = users.count()
    new_today = sum(
        1 for user in users.list(limit=max(total, 1)) if user.created_at and user.created_at.date() == today
    )
    return {
        "totalUsers": total,
        "activeUsers": users.count(is_active=True),
        "newUsersToday": new_today,
        "admins": users.count(role="admin"),
    }
