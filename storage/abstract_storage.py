"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from models.analytics import AnalyticsEvent
from models.user import User


class UserRepository(ABC):
    """Interface for user persistence."""

    @abstractmethod
    def add(self, user: User) -> User:
        """Persist a new user and return it with its assigned id."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[User]:
        """Return the user with the given id, if any."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        """Return the user with the given (normalized) email, if any."""

    @abstractmethod
    def find_by_verification_token(self, token: str) -> Optional[User]:
        """Return the user holding the given email verification token."""

    @abstractmethod
    def save(self, user: User) -> User:
        """Overwrite the stored record with ``user`` as given.

        Use :meth:`update` for read-modify-write changes.
        """

    @abstractmethod
    def update(self, user_id: int, mutate: Callable[[User], object]) -> Optional[User]:
        """Apply ``mutate`` to the current stored user and persist it atomically.

        ``mutate`` always receives the latest stored state, never a caller's
        copy. If it returns ``False`` nothing is written. Returns the updated
        user, or ``None`` when the user is missing or the change was declined.
        Exceptions raised by ``mutate`` abort the update.
        """

    @abstractmethod
    def delete(self, user: User) -> bool:
        """Remove a user; return whether anything was deleted."""

    @abstractmethod
    def list(self, limit: int = 50, offset: int = 0) -> list[User]:
        """Return users ordered by creation time, newest first."""

    @abstractmethod
    def count(self, *, is_active: Optional[bool] = None, role: Optional[str] = None) -> int:
        """Count users, optionally filtered by activation flag and role."""


class AnalyticsRepository(ABC):
    """Interface for the append-only analytics log."""

    @abstractmethod
    def add(self, event: AnalyticsEvent) -> AnalyticsEvent:
        """Append an event and return it with its assigned id."""

    @abstractmethod
    def list(
        self,
        *,
        user_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[AnalyticsEvent]:
        """Return events, oldest first, optionally filtered."""


class Storage:
    """Bundle of the repositories backing one application."""

    backend = "abstract"

    def __init__(self, users: UserRepository, analytics: AnalyticsRepository):
        self.users = users
        self.analytics = analytics
