"""AI-assisted resume content endpoints."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from services import ai, analytics, templates
from services.documents import (
    DOCX_MIMETYPE,
    PDF_MIMETYPE,
    DocumentExtractionError,
    UnsupportedDocument,
    extract_text,
)
from utils.auth import current_user, optional_user_id, require_auth
from utils.request_validation import parse_json_request, parse_text_field, validate_resume_data

content_bp = Blueprint("content", __name__)

COVER_LETTER_FIELDS = ("resumeData", "jobDescription", "companyName", "positionTitle")


@content_bp.route("/improve-text", methods=["POST"])
def improve_text():
    payload = parse_json_request(request)
    text = parse_text_field(payload, "text")
    section = parse_text_field(payload, "section")
    if not text or not section:
        raise BadRequest("Text and section are required")

    result = ai.improve_text(text, section)
    return jsonify({"success": True, **result}), HTTPStatus.OK


@content_bp.route("/analyze-resume", methods=["POST"])
def analyze_resume():
    """Score an uploaded PDF or DOCX resume."""

    upload = request.files.get("resume")
    if upload is None or not upload.filename:
        raise BadRequest("No file uploaded")
    if upload.mimetype not in (PDF_MIMETYPE, DOCX_MIMETYPE):
        raise BadRequest("Unsupported file type. Please upload a PDF or DOCX file.")

    try:
        resume_text = extract_text(upload.read(), upload.mimetype)
    except (UnsupportedDocument, DocumentExtractionError) as exc:
        raise BadRequest("No text could be extracted from the file") from exc

    analysis = ai.analyze_resume(resume_text)
    analytics.track_event("resume_analyzer", "analyze", user_id=optional_user_id())
    return jsonify({"success": True, **analysis}), HTTPStatus.OK


@content_bp.route("/generate-work-suggestions", methods=["POST"])
def generate_work_suggestions():
    payload = parse_json_request(request)
    job_title = parse_text_field(payload, "jobTitle")
    company = parse_text_field(payload, "company")
    kind = parse_text_field(payload, "type")
    industry = parse_text_field(payload, "industry") or None
    if not job_title or not company or not kind:
        raise BadRequest("Missing required fields: jobTitle, company, or type")

    suggestions = ai.work_suggestions(job_title, company, kind, industry)
    analytics.track_event(
        "resume_builder",
        "work_suggestions",
        user_id=optional_user_id(),
        metadata={"type": kind, "industry": industry},
    )
    return jsonify({"success": True, "suggestions": suggestions}), HTTPStatus.OK


@content_bp.route("/generate-cover-letter", methods=["POST"])
@require_auth
def generate_cover_letter():
    payload = parse_json_request(request)
    missing = [field for field in COVER_LETTER_FIELDS if not payload.get(field)]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(COVER_LETTER_FIELDS)}")
    validate_resume_data(payload["resumeData"])
    job_description = parse_text_field(payload, "jobDescription")
    company = parse_text_field(payload, "companyName")
    position = parse_text_field(payload, "positionTitle")

    result = ai.cover_letter(
        payload["resumeData"],
        job_description,
        company,
        position,
        kind=parse_text_field(payload, "type") or "generate",
        existing=parse_text_field(payload, "existingContent") or None,
    )
    analytics.track_event(
        "cover_letter",
        "generate",
        user_id=current_user().id,
        metadata={"company": company, "position": position},
    )
    return jsonify({"success": True, **result}), HTTPStatus.OK


@content_bp.route("/generate-templates", methods=["POST"])
def generate_templates():
    total = templates.generate_variations()
    return (
        jsonify(
            {
                "success": True,
                "message": f"Generated {total} template variations",
                "totalGenerated": total,
            }
        ),
        HTTPStatus.OK,
    )


@content_bp.route("/get-templates", methods=["GET"])
def get_templates():
    generated = templates.load_generated()
    return jsonify({"success": True, "templates": generated, "total": len(generated)}), HTTPStatus.OK
