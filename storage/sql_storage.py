"""SQLAlchemy-backed storage implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import Conflict

from models import db
from models.analytics import AnalyticsEvent
from models.user import User

from .abstract_storage import AnalyticsRepository, Storage, UserRepository

logger = logging.getLogger(__name__)

UPDATE_ATTEMPTS = 3


class SqlUserRepository(UserRepository):
    def add(self, user: User) -> User:
        db.session.add(user)
        db.session.commit()
        return user

    def get(self, user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        email = (email or "").strip().lower()
        return User.query.filter(func.lower(User.email) == email).first()

    def find_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return User.query.filter_by(email_verification_token=token).first()

    def save(self, user: User) -> User:
        db.session.add(user)
        db.session.commit()
        return user

    def update(self, user_id: int, mutate: Callable[[User], object]) -> Optional[User]:
        # The row is locked where the database supports it; the version column
        # turns the write into a conditional UPDATE everywhere else.
        statement = (
            select(User)
            .filter_by(id=user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        for attempt in range(1, UPDATE_ATTEMPTS + 1):
            user = db.session.execute(statement).scalar_one_or_none()
            if user is None:
                db.session.rollback()
                return None
            try:
                if mutate(user) is False:
                    db.session.rollback()
                    return None
                db.session.commit()
            except StaleDataError:
                db.session.rollback()
                logger.info("User %s changed during update (attempt %d)", user_id, attempt)
                continue
            except Exception:
                db.session.rollback()
                raise
            return user
        raise Conflict("The account was changed by another request. Please try again.")

    def delete(self, user: User) -> bool:
        existing = db.session.get(User, user.id)
        if existing is None:
            return False
        db.session.delete(existing)
        db.session.commit()
        return True

    def list(self, limit: int = 50, offset: int = 0) -> list[User]:
        return (
            User.query.order_by(User.created_at.desc(), User.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self, *, is_active: Optional[bool] = None, role: Optional[str] = None) -> int:
        query = User.query
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if role is not None:
            query = query.filter(User.role == role)
        return query.count()


class SqlAnalyticsRepository(AnalyticsRepository):
    def add(self, event: AnalyticsEvent) -> AnalyticsEvent:
        db.session.add(event)
        db.session.commit()
        return event

    def list(
        self,
        *,
        user_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[AnalyticsEvent]:
        query = AnalyticsEvent.query
        if user_id is not None:
            query = query.filter(AnalyticsEvent.user_id == user_id)
        if since is not None:
            query = query.filter(AnalyticsEvent.created_at >= since)
        return query.order_by(AnalyticsEvent.created_at.asc(), AnalyticsEvent.id.asc()).all()


class SqlStorage(Storage):
    """Storage on the Flask-SQLAlchemy session of the current app."""

    backend = "sql"

    def __init__(self):
        super().__init__(SqlUserRepository(), SqlAnalyticsRepository())
