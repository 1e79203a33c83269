"""Feature gates that require a verified email address."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify

from services import analytics
from utils.auth import current_user, require_verified_email

protected_bp = Blueprint("protected", __name__)

FEATURES = {
    "resume-builder": ("resume_builder", "Resume Builder"),
    "resume-analyzer": ("resume_analyzer", "Resume Analyzer"),
    "templates": ("templates", "Templates"),
    "cover-letter": ("cover_letter", "Cover Letter"),
    "profile": ("profile", "Profile"),
}


def _grant(feature: str, label: str) -> tuple:
    user = current_user()
    analytics.track_event(feature, "access", user_id=user.id)
    return (
        jsonify(
            {
                "success": True,
                "message": f"{label} access granted",
                "feature": feature,
                "user": user.to_dict(),
            }
        ),
        HTTPStatus.OK,
    )


def _make_view(feature: str, label: str):
    @require_verified_email
    def view():
        return _grant(feature, label)

    return view


for _path, (_feature, _label) in FEATURES.items():
    protected_bp.add_url_rule(f"/{_path}", endpoint=_feature, view_func=_make_view(_feature, _label))
