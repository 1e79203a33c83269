"""Bearer-token guards for view functions."""

from __future__ import annotations

from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from werkzeug.exceptions import Forbidden

from models.user import User
from storage import get_storage
from utils.errors import AuthenticationRequired, VerificationRequired


def _token_user() -> User | None:
    """Return the active account the verified token was issued to, if it still exists."""

    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None

    user = get_storage().users.get(user_id)
    if user is None or not user.is_active:
        return None
    # A token is bound to the account's creation stamp as well as its id.
    if get_jwt().get("stamp") != user.token_stamp:
        return None
    return user


def _resolve_user() -> User:
    verify_jwt_in_request()
    user = _token_user()
    if user is None:
        raise AuthenticationRequired("User profile not found.")
    return user


def optional_user_id() -> int | None:
    """Return the caller's user id when a valid token is present, else ``None``."""

    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None
    if get_jwt_identity() is None:
        return None
    user = _token_user()
    return user.id if user is not None else None


def current_user() -> User:
    """Return the user resolved by one of the guards below."""

    return g.current_user


def require_auth(view):
    """Require a valid bearer token and load the user onto ``g.current_user``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        g.current_user = _resolve_user()
        return view(*args, **kwargs)

    return wrapper


def require_verified_email(view):
    """Like :func:`require_auth`, but also reject unverified email addresses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user = _resolve_user()
        if not user.email_verified:
            raise VerificationRequired(email=user.email)
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def require_admin(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = _resolve_user()
        if not user.is_admin:
            raise Forbidden("Admin access required.")
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper
