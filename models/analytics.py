"""AnalyticsEvent model definition."""

import json
from datetime import datetime

from . import db


class AnalyticsEvent(db.Model):
    """Append-only record of an auth or feature-access event."""

    __tablename__ = "analytics_events"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)
    feature_name = db.Column(db.String(64), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False)
    # "metadata" is reserved on declarative models.
    event_metadata = db.Column("metadata", db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=db.func.now(),
    )

    def __init__(self, **kwargs):
        if "metadata" in kwargs:
            kwargs["event_metadata"] = kwargs.pop("metadata")
        kwargs.setdefault("created_at", datetime.utcnow())
        super().__init__(**kwargs)

    @property
    def parsed_metadata(self):
        if not self.event_metadata:
            return None
        try:
            return json.loads(self.event_metadata)
        except ValueError:
            return self.event_metadata

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "feature_name": self.feature_name,
            "action": self.action,
            "metadata": self.event_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalyticsEvent":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00")).replace(tzinfo=None)
        return cls(
            id=data.get("id"),
            user_id=data.get("user_id"),
            feature_name=data.get("feature_name"),
            action=data.get("action"),
            metadata=data.get("metadata"),
            created_at=created_at or datetime.utcnow(),
        )

    def __repr__(self) -> str:
        return f"<AnalyticsEvent {self.feature_name}/{self.action} user_id={self.user_id}>"
