"""Authentication blueprint: registration, login, profile and email verification."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from services import accounts, analytics
from utils.auth import current_user, require_auth
from utils.request_validation import (
    parse_json_request,
    validate_email,
    validate_name,
    validate_password,
)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Create an account and send the verification email."""
    payload = parse_json_request(request)
    email = validate_email(payload.get("email"))
    password = validate_password(payload.get("password"))
    name = validate_name(payload.get("name"))

    user = accounts.register_user(email, password, name)
    return (
        jsonify(
            {
                "success": True,
                "message": "User registered successfully. Please check your email to verify your account.",
                "user": user.to_dict(),
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a verified user and return a bearer token."""
    payload = parse_json_request(request)
    email = validate_email(payload.get("email"))
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        raise BadRequest("Password is required.")

    user = accounts.authenticate(email, password)
    return (
        jsonify(
            {
                "success": True,
                "message": "Login successful",
                "user": user.to_dict(),
                "token": accounts.issue_access_token(user),
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout() -> tuple:
    # Tokens are stateless; the client discards its copy.
    user = current_user()
    analytics.track_event("auth", "logout", user_id=user.id)
    return jsonify({"success": True, "message": "Logout successful"}), HTTPStatus.OK


@auth_bp.route("/profile", methods=["GET"])
@require_auth
def get_profile() -> tuple:
    return jsonify({"success": True, "user": current_user().to_dict()}), HTTPStatus.OK


@auth_bp.route("/profile", methods=["PUT"])
@require_auth
def update_profile() -> tuple:
    """Update the supplied profile fields and leave the rest untouched."""
    payload = parse_json_request(request)
    fields = {key: payload[key] for key in accounts.PROFILE_FIELDS if key in payload}
    user = accounts.update_profile(current_user(), fields)
    return (
        jsonify({"success": True, "message": "Profile updated successfully", "user": user.to_dict()}),
        HTTPStatus.OK,
    )


@auth_bp.route("/verify", methods=["GET"])
@require_auth
def verify_token() -> tuple:
    return jsonify({"success": True, "valid": True, "user": current_user().to_dict()}), HTTPStatus.OK


@auth_bp.route("/verify-email/<token>", methods=["GET"])
def verify_email(token: str) -> tuple:
    user = accounts.verify_email(token)
    if user is None:
        raise BadRequest("Invalid or expired verification token")
    return (
        jsonify(
            {
                "success": True,
                "message": "Email verified successfully. You can now log in.",
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "email_verified": user.email_verified,
                },
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification() -> tuple:
    payload = parse_json_request(request)
    accounts.resend_verification(validate_email(payload.get("email")))
    return jsonify({"success": True, "message": "Verification email sent successfully"}), HTTPStatus.OK
