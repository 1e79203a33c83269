"""Analytics event tracking and dashboard aggregates."""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Optional

from models.analytics import AnalyticsEvent
from models.user import User
from storage import get_storage

logger = logging.getLogger(__name__)


def track_event(
    feature_name: str,
    action: str,
    user_id: Optional[int] = None,
    metadata: Any = None,
) -> AnalyticsEvent:
    """Append an analytics event; dict metadata is stored as JSON."""

    if metadata is not None and not isinstance(metadata, str):
        metadata = json.dumps(metadata)
    event = AnalyticsEvent(
        user_id=user_id,
        feature_name=feature_name,
        action=action,
        metadata=metadata,
    )
    get_storage().analytics.add(event)
    logger.debug("Tracked %s/%s for user %s", feature_name, action, user_id)
    return event


def _since(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) - timedelta(days=days)


def feature_usage(days: int = 30, now: Optional[datetime] = None) -> list[dict]:
    """Usage totals per feature over the last ``days`` days, busiest first."""

    totals: Counter = Counter()
    users: dict[str, set] = defaultdict(set)
    last_used: dict[str, datetime] = {}

    for event in get_storage().analytics.list(since=_since(days, now)):
        totals[event.feature_name] += 1
        if event.user_id is not None:
            users[event.feature_name].add(event.user_id)
        previous = last_used.get(event.feature_name)
        if previous is None or event.created_at > previous:
            last_used[event.feature_name] = event.created_at

    return [
        {
            "feature_name": feature,
            "total_usage": total,
            "unique_users": len(users[feature]),
            "last_used": last_used[feature].isoformat(),
        }
        for feature, total in totals.most_common()
    ]


def daily_active_users(days: int = 30, now: Optional[datetime] = None) -> list[dict]:
    active: dict[str, set] = defaultdict(set)
    for event in get_storage().analytics.list(since=_since(days, now)):
        if event.user_id is None:
            continue
        active[event.created_at.date().isoformat()].add(event.user_id)

    return [
        {"date": date, "active_users": len(user_ids)}
        for date, user_ids in sorted(active.items(), reverse=True)
    ]


def feature_adoption() -> list[dict]:
    """Share of active users who have touched each feature."""

    storage = get_storage()
    total_users = storage.users.count(is_active=True)
    users: dict[str, set] = defaultdict(set)
    for event in storage.analytics.list():
        if event.user_id is not None:
            users[event.feature_name].add(event.user_id)

    rows = [
        {
            "feature_name": feature,
            "adoption_rate": (len(ids) / total_users) * 100 if total_users else 0,
            "total_users": len(ids),
        }
        for feature, ids in users.items()
    ]
    return sorted(rows, key=lambda row: row["total_users"], reverse=True)


def recent_activity(limit: int = 100) -> list[dict]:
    storage = get_storage()
    events = storage.analytics.list()[-limit:] if limit else []
    names: dict[int, Optional[User]] = {}

    activities = []
    for event in reversed(events):
        user = None
        if event.user_id is not None:
            if event.user_id not in names:
                names[event.user_id] = storage.users.get(event.user_id)
            user = names[event.user_id]
        activities.append(
            {
                "id": event.id,
                "user_email": user.email if user else None,
                "user_name": user.name if user else None,
                "feature_name": event.feature_name,
                "action": event.action,
                "created_at": event.created_at.isoformat(),
                "metadata": event.parsed_metadata,
            }
        )
    return activities


def export_user_data(user: User) -> dict:
    events = get_storage().analytics.list(user_id=user.id)
    return {
        "user": user.to_dict(),
        "analytics": [event.to_dict() for event in reversed(events)],
    }


def user_engagement(limit: int = 50) -> list[dict]:
    """Most active users by event count."""

    storage = get_storage()
    counts: Counter = Counter()
    features: dict[int, set] = defaultdict(set)
    last_seen: dict[int, datetime] = {}
    for event in storage.analytics.list():
        if event.user_id is None:
            continue
        counts[event.user_id] += 1
        features[event.user_id].add(event.feature_name)
        last_seen[event.user_id] = max(last_seen.get(event.user_id, event.created_at), event.created_at)

    rows = []
    for user_id, total in counts.most_common(limit):
        user = storage.users.get(user_id)
        rows.append(
            {
                "user_id": user_id,
                "email": user.email if user else None,
                "name": user.name if user else None,
                "total_events": total,
                "features_used": len(features[user_id]),
                "last_activity": last_seen[user_id].isoformat(),
            }
        )
    return rows


def popular_values(key: str, days: int = 30, now: Optional[datetime] = None) -> list[dict]:
    """Count how often each value of ``metadata[key]`` was recorded."""

    counts: Counter = Counter()
    for event in get_storage().analytics.list(since=_since(days, now)):
        metadata = event.parsed_metadata
        if isinstance(metadata, dict) and metadata.get(key):
            counts[str(metadata[key])] += 1
    return [{key: value, "usage_count": total} for value, total in counts.most_common(10)]
