"""HTTP errors that carry extra fields into the JSON error body."""

from __future__ import annotations

from werkzeug.exceptions import Forbidden, InternalServerError, Unauthorized


class AuthenticationRequired(Unauthorized):
    """No usable credentials were supplied."""

    description = "Access denied. Please log in to use this feature."

    def __init__(self, description: str | None = None):
        super().__init__(description)
        self.extra = {"requiresAuth": True}


class VerificationRequired(Forbidden):
    """The account exists but its email address has not been verified."""

    description = (
        "This feature requires email verification. "
        "Please check your email and verify your account."
    )

    def __init__(self, description: str | None = None, *, status: int = 403, email: str | None = None):
        super().__init__(description)
        self.code = status
        self.extra = {"requiresVerification": True}
        if email:
            self.extra["user"] = {"email": email, "email_verified": False}


class AIServiceNotConfigured(InternalServerError):
    description = "OpenAI API key not configured"
