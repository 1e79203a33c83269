"""JSON-file storage implementation."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from models.analytics import AnalyticsEvent
from models.user import User

from .abstract_storage import AnalyticsRepository, Storage, UserRepository

logger = logging.getLogger(__name__)

_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


class JsonFile:
    """A JSON array on disk, rewritten whole on every mutation."""

    def __init__(self, path: Path):
        self.path = path
        self.sequence_path = path.with_suffix(".seq")
        self.lock = _lock_for(path)
        with self.lock:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._write([])

    def read(self) -> list[dict]:
        with self.lock:
            with open(self.path, "r", encoding="utf-8") as handle:
                return json.load(handle)

    def _write(self, records: list[dict]) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def update(self, mutate: Callable[[list[dict]], object]):
        """Run ``mutate`` on the records under the file lock, then write them back."""

        with self.lock:
            records = self.read()
            result = mutate(records)
            self._write(records)
            return result

    def next_id(self, records: list[dict]) -> int:
        """Allocate an id above every id this file has ever held.

        The high-water mark lives next to the data file, so ids of deleted
        records are not reused. Call only from inside :meth:`update`.
        """

        with self.lock:
            highest = _highest_id(records)
            if self.sequence_path.exists():
                stored = self.sequence_path.read_text(encoding="utf-8").strip()
                highest = max(highest, int(stored or 0))
            new_id = highest + 1
            self.sequence_path.write_text(str(new_id), encoding="utf-8")
            return new_id


def _highest_id(records: list[dict]) -> int:
    return max((record.get("id") or 0 for record in records), default=0)


class JsonUserRepository(UserRepository):
    def __init__(self, file: JsonFile):
        self.file = file

    def _records(self) -> list[dict]:
        return self.file.read()

    def add(self, user: User) -> User:
        def _insert(records: list[dict]) -> int:
            email = (user.email or "").lower()
            if any((r.get("email") or "").lower() == email for r in records):
                raise ValueError(f"Duplicate email: {email}")
            new_id = self.file.next_id(records)
            user.id = new_id
            records.append(user.to_dict(include_private=True))
            return new_id

        self.file.update(_insert)
        return user

    def get(self, user_id: int) -> Optional[User]:
        for record in self._records():
            if record.get("id") == user_id:
                return User.from_dict(record)
        return None

    def find_by_email(self, email: str) -> Optional[User]:
        email = (email or "").lower()
        for record in self._records():
            if (record.get("email") or "").lower() == email:
                return User.from_dict(record)
        return None

    def find_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        for record in self._records():
            if record.get("email_verification_token") == token:
                return User.from_dict(record)
        return None

    def save(self, user: User) -> User:
        def _replace(records: list[dict]) -> None:
            for index, record in enumerate(records):
                if record.get("id") == user.id:
                    records[index] = user.to_dict(include_private=True)
                    return
            raise LookupError(f"User {user.id} does not exist")

        self.file.update(_replace)
        return user

    def update(self, user_id: int, mutate: Callable[[User], object]) -> Optional[User]:
        def _apply(records: list[dict]) -> Optional[User]:
            for index, record in enumerate(records):
                if record.get("id") == user_id:
                    user = User.from_dict(record)
                    if mutate(user) is False:
                        return None
                    records[index] = user.to_dict(include_private=True)
                    return user
            return None

        return self.file.update(_apply)

    def delete(self, user: User) -> bool:
        def _remove(records: list[dict]) -> int:
            before = len(records)
            records[:] = [r for r in records if r.get("id") != user.id]
            return before - len(records)

        return self.file.update(_remove) > 0

    def list(self, limit: int = 50, offset: int = 0) -> list[User]:
        records = sorted(
            self._records(),
            key=lambda r: (r.get("created_at") or "", r.get("id") or 0),
            reverse=True,
        )
        return [User.from_dict(r) for r in records[offset:offset + limit]]

    def count(self, *, is_active: Optional[bool] = None, role: Optional[str] = None) -> int:
        total = 0
        for record in self._records():
            if is_active is not None and bool(record.get("is_active")) != is_active:
                continue
            if role is not None and record.get("role") != role:
                continue
            total += 1
        return total


class JsonAnalyticsRepository(AnalyticsRepository):
    def __init__(self, file: JsonFile):
        self.file = file

    def add(self, event: AnalyticsEvent) -> AnalyticsEvent:
        def _append(records: list[dict]) -> None:
            event.id = self.file.next_id(records)
            records.append(event.to_dict())

        self.file.update(_append)
        return event

    def list(
        self,
        *,
        user_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[AnalyticsEvent]:
        events = [AnalyticsEvent.from_dict(r) for r in self.file.read()]
        if user_id is not None:
            events = [e for e in events if e.user_id == user_id]
        if since is not None:
            events = [e for e in events if e.created_at >= since]
        return sorted(events, key=lambda e: (e.created_at, e.id or 0))


class JsonStorage(Storage):
    """Users and analytics kept as ``users.json`` and ``analytics.json``."""

    backend = "json"

    def __init__(self, data_dir: str | os.PathLike):
        self.data_dir = Path(data_dir)
        self.users_file = JsonFile(self.data_dir / "users.json")
        self.analytics_file = JsonFile(self.data_dir / "analytics.json")
        logger.debug("JSON storage initialised in %s", self.data_dir)
        super().__init__(
            JsonUserRepository(self.users_file),
            JsonAnalyticsRepository(self.analytics_file),
        )
