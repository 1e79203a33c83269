"""Statement-style access to the JSON store.

Callers written against a ``prepare(sql).run/get/all`` call shape can keep
working on top of :class:`~storage.json_storage.JsonStorage`. The SQL text is
only matched against a fixed set of substrings to pick a repository call; it
is never parsed. Statements that match nothing return an empty result
(``{"changes": 0}``, ``None`` or ``[]``) and log a warning.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from models.analytics import AnalyticsEvent
from models.user import User

from .json_storage import JsonStorage

logger = logging.getLogger(__name__)


class Statement:
    def __init__(self, store: JsonStorage, sql: str):
        self.store = store
        self.sql = sql

    def _unmatched(self, method: str) -> None:
        logger.warning("Unrecognized statement passed to %s(): %s", method, self.sql)

    def run(self, *params: Any) -> dict:
        sql = self.sql
        if "INSERT INTO users" in sql:
            email, password_hash, name = params[0], params[1], params[2]
            role = params[3] if len(params) > 3 and params[3] else "user"
            user = User(
                email=(email or "").strip().lower(),
                password_hash=password_hash,
                name=name or "",
                role=role,
            )
            self.store.users.add(user)
            return {"lastInsertRowid": user.id, "changes": 1}

        if "INSERT INTO analytics" in sql:
            padded = list(params) + [None] * (4 - len(params))
            event = AnalyticsEvent(
                user_id=padded[0],
                feature_name=padded[1],
                action=padded[2],
                metadata=padded[3],
            )
            self.store.analytics.add(event)
            return {"lastInsertRowid": event.id, "changes": 1}

        if "UPDATE users" in sql:
            # Only timestamps are written; SET clauses are not interpreted.
            if not params:
                return {"changes": 0}

            def _touch(user: User) -> None:
                if "last_login" in sql:
                    user.touch_login()
                else:
                    user.updated_at = datetime.utcnow()

            return {"changes": 0 if self.store.users.update(params[-1], _touch) is None else 1}

        if "DELETE FROM users" in sql:
            user = self.store.users.get(params[0]) if params else None
            if user is None:
                return {"changes": 0}
            return {"changes": 1 if self.store.users.delete(user) else 0}

        self._unmatched("run")
        return {"changes": 0}

    def get(self, *params: Any) -> Optional[dict]:
        sql = self.sql
        if "SELECT * FROM users WHERE email" in sql:
            user = self.store.users.find_by_email(params[0])
            return user.to_dict(include_private=True) if user else None

        if "SELECT * FROM users WHERE id" in sql:
            user = self.store.users.get(params[0])
            return user.to_dict(include_private=True) if user else None

        if "SELECT COUNT(*) as count FROM users" in sql:
            if "WHERE is_active = 1" in sql:
                return {"count": self.store.users.count(is_active=True)}
            if 'WHERE role = "admin"' in sql:
                return {"count": self.store.users.count(role="admin")}
            return {"count": self.store.users.count()}

        self._unmatched("get")
        return None

    def all(self, *params: Any) -> list:
        sql = self.sql
        if "SELECT" in sql and "FROM users" in sql:
            users = [User.from_dict(r) for r in self.store.users_file.read()]
            if "ORDER BY created_at DESC" in sql:
                users.sort(key=lambda u: u.created_at, reverse=True)
            return [u.to_dict(include_private=True) for u in users]

        if "SELECT" in sql and "FROM analytics" in sql:
            return [e.to_dict() for e in self.store.analytics.list()]

        self._unmatched("all")
        return []


def prepare(store: JsonStorage, sql: str) -> Statement:
    """Return a statement bound to ``store`` for the given SQL text."""

    return Statement(store, sql)
