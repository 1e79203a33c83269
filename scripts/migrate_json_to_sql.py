"""Copy users and analytics events from the JSON files into the SQL database."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import text

from app import create_app
from models import db
from models.analytics import AnalyticsEvent
from models.user import User
from storage import JsonStorage

logger = logging.getLogger(__name__)

SEQUENCED_TABLES = ("users", "analytics_events")


def reset_sequences() -> None:
    """Move PostgreSQL id sequences past ids that were inserted explicitly.

    SQLite AUTOINCREMENT tables track explicit ids on their own.
    """

    if db.engine.dialect.name != "postgresql":
        return
    for table in SEQUENCED_TABLES:
        db.session.execute(
            text(
                f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
            )
        )
        logger.info("Reset id sequence for %s", table)


def migrate(source: JsonStorage) -> dict:
    """Insert every JSON record not already present; ids are preserved."""

    copied = {"users": 0, "analytics": 0, "skipped_users": 0}

    for record in source.users_file.read():
        if db.session.get(User, record.get("id")) is not None or (
            User.query.filter_by(email=(record.get("email") or "").lower()).first() is not None
        ):
            copied["skipped_users"] += 1
            continue
        db.session.add(User.from_dict(record))
        copied["users"] += 1

    for record in source.analytics_file.read():
        if db.session.get(AnalyticsEvent, record.get("id")) is not None:
            continue
        db.session.add(AnalyticsEvent.from_dict(record))
        copied["analytics"] += 1

    db.session.commit()
    reset_sequences()
    db.session.commit()
    return copied


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--data-dir", help="directory holding users.json and analytics.json")
    parser.add_argument("--create-tables", action="store_true", help="create missing tables first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.create_tables:
            db.create_all()
        source = JsonStorage(args.data_dir or app.config.get("DATA_DIR", "data"))
        result = migrate(source)
        logger.info("Migration finished: %s", result)
        print(
            f"Copied {result['users']} users ({result['skipped_users']} already present) "
            f"and {result['analytics']} analytics events."
        )


if __name__ == "__main__":
    main()
