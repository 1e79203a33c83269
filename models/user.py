"""User model definition."""

from datetime import datetime
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


ROLES = ("user", "admin")

# Fields that may be persisted by non-SQL backends, in serialization order.
USER_FIELDS = (
    "id",
    "email",
    "password_hash",
    "name",
    "role",
    "is_active",
    "email_verified",
    "email_verification_token",
    "email_verification_expires",
    "last_login",
    "created_at",
    "updated_at",
)
DATETIME_FIELDS = ("email_verification_expires", "last_login", "created_at", "updated_at")


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)


class User(db.Model):
    """Represents a resume builder account."""

    __tablename__ = "users"
    # Ids of deleted users are never reused.
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default="user")
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("true"),
    )
    email_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.text("false"),
    )
    email_verification_token = db.Column(db.String(128), nullable=True, index=True)
    email_verification_expires = db.Column(db.DateTime, nullable=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    # Row version; every UPDATE is conditional on it.
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        # Column defaults only fire on flush; file-backed storage needs them up front.
        now = datetime.utcnow()
        kwargs.setdefault("name", "")
        kwargs.setdefault("role", "user")
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("email_verified", False)
        kwargs.setdefault("created_at", now)
        kwargs.setdefault("updated_at", kwargs["created_at"])
        super().__init__(**kwargs)

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def token_stamp(self) -> Optional[str]:
        """Value carried in access tokens to pin them to this account."""

        return _isoformat(self.created_at)

    def set_verification_token(self, token: str, expires: datetime) -> None:
        """Store a fresh email verification token, replacing any previous one."""

        self.email_verification_token = token
        self.email_verification_expires = expires
        self.updated_at = datetime.utcnow()

    def consume_verification_token(self, now: Optional[datetime] = None) -> bool:
        """Mark the email verified if the stored token has not expired.

        The token is cleared on success so it cannot be used twice. An expired
        token is left in place and rejected.
        """

        now = now or datetime.utcnow()
        if not self.email_verification_token:
            return False
        if self.email_verification_expires and self.email_verification_expires < now:
            return False

        self.email_verified = True
        self.email_verification_token = None
        self.email_verification_expires = None
        self.updated_at = now
        return True

    def touch_login(self, now: Optional[datetime] = None) -> None:
        now = now or datetime.utcnow()
        self.last_login = now
        self.updated_at = now

    def to_dict(self, include_private: bool = False) -> dict:
        """Serialize the user; private fields are only included for storage."""

        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "email_verified": self.email_verified,
            "last_login": _isoformat(self.last_login),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }
        if include_private:
            data["password_hash"] = self.password_hash
            data["email_verification_token"] = self.email_verification_token
            data["email_verification_expires"] = _isoformat(self.email_verification_expires)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Build a detached user from a stored record."""

        values = {key: data[key] for key in USER_FIELDS if data.get(key) is not None}
        for key in DATETIME_FIELDS:
            if key in values:
                values[key] = _parse_datetime(values[key])
        return cls(**values)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
