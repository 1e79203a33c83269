"""Unit tests for the User model."""

from __future__ import annotations

from datetime import datetime, timedelta

from models.user import User


def _user(**kwargs) -> User:
    user = User(email="jane@example.com", name="Jane Doe", **kwargs)
    user.set_password("secret123")
    return user


def test_password_hashing():
    user = _user()
    assert user.password_hash != "secret123"
    assert user.check_password("secret123")
    assert not user.check_password("wrong")


def test_defaults_are_set_without_a_session():
    user = _user()
    assert user.role == "user"
    assert user.is_active is True
    assert user.email_verified is False
    assert user.created_at is not None
    assert not user.is_admin


def test_to_dict_hides_private_fields():
    user = _user()
    user.set_verification_token("tok", datetime.utcnow() + timedelta(hours=24))

    public = user.to_dict()
    private = user.to_dict(include_private=True)

    for field in ("password_hash", "email_verification_token", "email_verification_expires"):
        assert field not in public
        assert field in private


def test_verification_token_is_consumed_once():
    user = _user()
    now = datetime(2024, 1, 1, 12, 0)
    user.set_verification_token("tok", now + timedelta(hours=24))

    assert user.consume_verification_token(now) is True
    assert user.email_verified is True
    assert user.email_verification_token is None
    assert user.consume_verification_token(now) is False


def test_expired_verification_token_is_rejected():
    user = _user()
    now = datetime(2024, 1, 1, 12, 0)
    user.set_verification_token("tok", now - timedelta(seconds=1))

    assert user.consume_verification_token(now) is False
    assert user.email_verified is False


def test_from_dict_restores_stored_record():
    user = _user(role="admin")
    user.id = 7
    user.touch_login(datetime(2024, 5, 1, 9, 30))

    restored = User.from_dict(user.to_dict(include_private=True))

    assert restored.id == 7
    assert restored.role == "admin"
    assert restored.last_login == datetime(2024, 5, 1, 9, 30)
    assert restored.check_password("secret123")
