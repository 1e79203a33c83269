"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    if not isinstance(raw_email, str):
        return ""
    return raw_email.strip().lower()


def validate_email(raw_email: str | None) -> str:
    email = normalize_email(raw_email)
    if not EMAIL_PATTERN.match(email):
        raise BadRequest("Valid email is required.")
    return email


def validate_password(raw_password: str | None) -> str:
    password = raw_password if isinstance(raw_password, str) else ""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    return password


def validate_name(raw_name: str | None) -> str:
    name = raw_name.strip() if isinstance(raw_name, str) else ""
    if len(name) < MIN_NAME_LENGTH:
        raise BadRequest(f"Name must be at least {MIN_NAME_LENGTH} characters.")
    return name


def parse_positive_int(value: str | None, default: int, *, maximum: int | None = None) -> int:
    try:
        number = int(value) if value is not None else default
    except (TypeError, ValueError):
        number = default
    if number < 1:
        number = default
    if maximum is not None:
        number = min(number, maximum)
    return number


def parse_text_field(payload: dict, key: str) -> str:
    """Return ``payload[key]`` stripped; absent or null is ``""``, anything but a string is a 400."""

    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequest(f"{key} must be a string.")
    return value.strip()


RESUME_ENTRY_SECTIONS = ("workExperience", "education", "projects")


def validate_resume_data(resume: object) -> dict:
    """Check the shape of a ``resumeData`` object and return it."""

    if not isinstance(resume, dict):
        raise BadRequest("resumeData must be an object.")

    personal = resume.get("personalInfo")
    if personal is not None:
        if not isinstance(personal, dict):
            raise BadRequest("personalInfo must be an object.")
        for key, value in personal.items():
            if value is not None and not isinstance(value, str):
                raise BadRequest(f"personalInfo.{key} must be a string.")

    for section in RESUME_ENTRY_SECTIONS:
        entries = resume.get(section)
        if entries is None:
            continue
        if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
            raise BadRequest(f"{section} must be a list of objects.")

    skills = resume.get("skills")
    if skills is not None and (
        not isinstance(skills, list) or not all(isinstance(skill, str) for skill in skills)
    ):
        raise BadRequest("skills must be a list of strings.")
    return resume
