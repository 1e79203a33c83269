"""Application configuration module."""

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_EXPIRES_HOURS", "24")))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))

    # Persistence
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "json")
    DATA_DIR = os.getenv("DATA_DIR", "data")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
    _raw_origins = os.getenv("CORS_ORIGINS", FRONTEND_URL)
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "5 per 15 minutes")
    API_RATE_LIMIT = os.getenv("API_RATE_LIMIT", "100 per 15 minutes")
    RATELIMIT_STRATEGY = os.getenv("RATELIMIT_STRATEGY", "fixed-window")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")

    # Email verification
    VERIFICATION_TOKEN_HOURS = int(os.getenv("VERIFICATION_TOKEN_HOURS", "24"))
    MAIL_HOST = os.getenv("EMAIL_HOST", "smtp.ethereal.email")
    MAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    MAIL_USE_SSL = _get_bool(os.getenv("EMAIL_USE_SSL"), default=False)
    MAIL_USE_TLS = _get_bool(os.getenv("EMAIL_USE_TLS"), default=True)
    MAIL_USERNAME = os.getenv("EMAIL_USER")
    MAIL_PASSWORD = os.getenv("EMAIL_PASS")
    MAIL_FROM = os.getenv("EMAIL_FROM", "noreply@resumebuilder.com")
    MAIL_TIMEOUT = int(os.getenv("EMAIL_TIMEOUT", "15"))
    MAIL_SUPPRESS_SEND = _get_bool(os.getenv("MAIL_SUPPRESS_SEND"), default=False)

    # OpenAI
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "30"))
    OPENAI_MAX_RETRIES = int(os.getenv("OPENAI_MAX_RETRIES", "2"))

    # Resume templates
    TEMPLATES_DIR = os.getenv("TEMPLATES_DIR", "resume_templates")
