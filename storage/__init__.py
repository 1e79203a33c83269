"""Storage backends."""

from flask import Flask, current_app

from .abstract_storage import AnalyticsRepository, Storage, UserRepository
from .json_storage import JsonStorage
from .sql_storage import SqlStorage

__all__ = [
    "AnalyticsRepository",
    "JsonStorage",
    "SqlStorage",
    "Storage",
    "UserRepository",
    "get_storage",
    "init_storage",
]

BACKENDS = ("json", "sql")


def init_storage(app: Flask) -> Storage:
    """Build the configured storage bundle and attach it to the app."""

    backend = (app.config.get("STORAGE_BACKEND") or "json").strip().lower()
    if backend == "json":
        storage = JsonStorage(app.config.get("DATA_DIR", "data"))
    elif backend == "sql":
        storage = SqlStorage()
    else:
        raise ValueError(
            f"Unknown STORAGE_BACKEND {backend!r}; expected one of {', '.join(BACKENDS)}."
        )

    app.extensions["storage"] = storage
    app.logger.info("Using %s storage backend", storage.backend)
    return storage


def get_storage() -> Storage:
    """Return the storage bundle of the current application."""

    return current_app.extensions["storage"]
