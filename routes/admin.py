"""Admin blueprint: user management and usage analytics."""

from __future__ import annotations
from http import HTTPStatus
import math

from flask import Blueprint, jsonify, request

from services import accounts, analytics
from storage import get_storage
from utils.auth import current_user, require_admin
from utils.request_validation import parse_json_request, parse_positive_int

admin_bp = Blueprint("admin", __name__)

EDITABLE_FIELDS = ("name", "email", "role", "is_active")


@admin_bp.route("/dashboard", methods=["GET"])
@require_admin
def dashboard():
    return (
        jsonify(
            {
                "success": True,
                "userStats": accounts.user_stats(),
                "featureUsage": analytics.feature_usage(30),
                "dailyActiveUsers": analytics.daily_active_users(30),
                "featureAdoption": analytics.feature_adoption(),
            }
        ),
        HTTPStatus.OK,
    )


@admin_bp.route("/users", methods=["GET"])
@require_admin
def list_users():
    """Page through users, newest first."""

    page = parse_positive_int(request.args.get("page"), 1)
    limit = parse_positive_int(request.args.get("limit"), 50, maximum=200)
    users = get_storage().users
    total = users.count()

    return (
        jsonify(
            {
                "success": True,
                "users": [user.to_dict() for user in users.list(limit=limit, offset=(page - 1) * limit)],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "totalPages": math.ceil(total / limit),
                },
            }
        ),
        HTTPStatus.OK,
    )


@admin_bp.route("/users/<int:user_id>", methods=["GET"])
@require_admin
def get_user(user_id: int):
    user = accounts.get_user_or_404(user_id)
    events = get_storage().analytics.list(user_id=user_id)
    return (
        jsonify(
            {
                "success": True,
                "user": user.to_dict(),
                "activity": [event.to_dict() for event in reversed(events[-50:])],
            }
        ),
        HTTPStatus.OK,
    )


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@require_admin
def update_user(user_id: int):
    actor = current_user()
    user = accounts.get_user_or_404(user_id)
    payload = parse_json_request(request)
    fields = {key: payload[key] for key in EDITABLE_FIELDS if key in payload}

    accounts.require_not_self_demotion(actor, user, fields)
    user = accounts.update_profile(user, fields, allow_admin_fields=True)
    analytics.track_event(
        "admin",
        "update_user",
        user_id=actor.id,
        metadata={"target_user_id": user_id, "updates": fields},
    )
    return (
        jsonify({"success": True, "message": "User updated successfully", "user": user.to_dict()}),
        HTTPStatus.OK,
    )


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_admin
def delete_user(user_id: int):
    user = accounts.get_user_or_404(user_id)
    accounts.delete_user(current_user(), user)
    return jsonify({"success": True, "message": "User deleted successfully"}), HTTPStatus.OK


@admin_bp.route("/users/<int:user_id>/export", methods=["GET"])
@require_admin
def export_user(user_id: int):
    user = accounts.get_user_or_404(user_id)
    analytics.track_event(
        "admin", "export_user_data", user_id=current_user().id, metadata={"target_user_id": user_id}
    )
    response = jsonify(analytics.export_user_data(user))
    response.headers["Content-Disposition"] = f'attachment; filename="user_{user_id}_data.json"'
    return response


@admin_bp.route("/analytics", methods=["GET"])
@require_admin
def usage_analytics():
    days = parse_positive_int(request.args.get("days"), 30, maximum=365)
    return (
        jsonify(
            {
                "success": True,
                "featureUsage": analytics.feature_usage(days),
                "userEngagement": analytics.user_engagement(50),
                "popularTemplates": analytics.popular_values("templateId", days),
                "popularIndustries": analytics.popular_values("industry", days),
            }
        ),
        HTTPStatus.OK,
    )


@admin_bp.route("/activity", methods=["GET"])
@require_admin
def activity():
    limit = parse_positive_int(request.args.get("limit"), 100, maximum=1000)
    return jsonify({"success": True, "activities": analytics.recent_activity(limit)}), HTTPStatus.OK


@admin_bp.route("/metrics/adoption", methods=["GET"])
@require_admin
def adoption():
    rows = analytics.feature_adoption()
    feature = request.args.get("feature")
    if feature:
        rows = [row for row in rows if row["feature_name"] == feature]
    return jsonify({"success": True, "adoption": rows}), HTTPStatus.OK


@admin_bp.route("/metrics/dau", methods=["GET"])
@require_admin
def dau():
    days = parse_positive_int(request.args.get("days"), 30, maximum=365)
    return jsonify({"success": True, "dauData": analytics.daily_active_users(days)}), HTTPStatus.OK
