"""Outgoing email over SMTP."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from models.user import User

logger = logging.getLogger(__name__)


class MailDeliveryError(RuntimeError):
    """The SMTP server could not be reached or refused the message."""


def verification_url(token: str) -> str:
    base = (current_app.config.get("FRONTEND_URL") or "").rstrip("/")
    return f"{base}/verify-email?token={token}"


def _outbox() -> list[EmailMessage]:
    return current_app.extensions.setdefault("mail_outbox", [])


def send_message(message: EmailMessage) -> None:
    """Deliver ``message`` with the configured SMTP server."""

    config = current_app.config
    if config.get("MAIL_SUPPRESS_SEND"):
        _outbox().append(message)
        logger.info("Mail delivery suppressed; queued %r for %s", message["Subject"], message["To"])
        return

    host = config.get("MAIL_HOST")
    port = int(config.get("MAIL_PORT") or 587)
    timeout = config.get("MAIL_TIMEOUT", 15)
    username = config.get("MAIL_USERNAME")
    password = config.get("MAIL_PASSWORD")

    try:
        if config.get("MAIL_USE_SSL"):
            with smtplib.SMTP_SSL(host, port, timeout=timeout) as server:
                if username and password:
                    server.login(username, password)
                server.send_message(message)
        else:
            with smtplib.SMTP(host, port, timeout=timeout) as server:
                if config.get("MAIL_USE_TLS"):
                    server.starttls()
                if username and password:
                    server.login(username, password)
                server.send_message(message)
    except smtplib.SMTPAuthenticationError as exc:
        logger.exception("SMTP auth failed for %s", username)
        raise MailDeliveryError("SMTP authentication failed.") from exc
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("SMTP error while sending email to %s", message["To"])
        raise MailDeliveryError("Failed to send email.") from exc

    logger.info("Sent %r to %s", message["Subject"], message["To"])


def send_verification_email(user: User, token: str) -> None:
    url = verification_url(token)
    hours = current_app.config.get("VERIFICATION_TOKEN_HOURS", 24)
    name = user.name or "there"

    message = EmailMessage()
    message["Subject"] = "Verify Your Email Address"
    message["From"] = current_app.config.get("MAIL_FROM")
    message["To"] = user.email
    message.set_content(
        f"Hi {name},\n\n"
        "Thank you for registering with Resume Builder. To complete your "
        "registration, please verify your email address by opening the link "
        f"below:\n\n{url}\n\n"
        f"This verification link will expire in {hours} hours.\n\n"
        "If you didn't create an account with us, please ignore this email.\n\n"
        "Best regards,\nThe Resume Builder Team\n"
    )
    message.add_alternative(
        f"""\
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2>Hi {name},</h2>
    <p>Thank you for registering with Resume Builder. To complete your registration,
    please verify your email address.</p>
    <p><a href="{url}" style="display: inline-block; padding: 12px 24px; background: #4f46e5;
    color: white; text-decoration: none; border-radius: 6px;">Verify Email Address</a></p>
    <p style="word-break: break-all; color: #4f46e5;">{url}</p>
    <p><strong>This verification link will expire in {hours} hours.</strong></p>
    <p>If you didn't create an account with us, please ignore this email.</p>
  </body>
</html>
""",
        subtype="html",
    )
    send_message(message)
