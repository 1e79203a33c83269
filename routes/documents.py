"""Resume PDF export and upload parsing."""

from __future__ import annotations
from http import HTTPStatus
from io import BytesIO
import logging
import re

from flask import Blueprint, jsonify, request, send_file
from werkzeug.exceptions import BadRequest, NotFound

from services import analytics, templates
from services.documents import (
    SUPPORTED_MIMETYPES,
    DocumentExtractionError,
    UnsupportedDocument,
    extract_text,
    render_resume_pdf,
)
from utils.auth import optional_user_id
from utils.request_validation import parse_json_request, validate_resume_data

documents_bp = Blueprint("documents", __name__)
logger = logging.getLogger(__name__)

MIN_RESUME_TEXT = 50


def _validate_resume(resume: object) -> dict:
    if resume is None:
        raise BadRequest("resumeData is required.")
    validate_resume_data(resume)
    personal = resume.get("personalInfo") or {}
    if not personal.get("fullName") or not personal.get("email"):
        raise BadRequest("Missing required personal information")
    if not resume.get("workExperience"):
        raise BadRequest("At least one work experience is required")
    if not resume.get("skills"):
        raise BadRequest("At least one skill is required")
    return resume


def _download_name(full_name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", full_name).strip("_") or "resume"
    return f"{slug}_resume.pdf"


@documents_bp.route("/generate-pdf", methods=["POST"])
def generate_pdf():
    """Render resume data as a downloadable PDF."""

    payload = parse_json_request(request)
    resume = _validate_resume(payload.get("resumeData"))

    template = None
    template_id = payload.get("templateId")
    if template_id:
        template = templates.load_template(template_id)
        if template is None:
            raise NotFound("Template not found.")

    pdf = render_resume_pdf(resume, template)
    analytics.track_event(
        "resume_builder",
        "generate_pdf",
        user_id=optional_user_id(),
        metadata={"templateId": template_id},
    )
    logger.info("Rendered %d byte resume PDF", len(pdf))
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=_download_name(resume["personalInfo"]["fullName"]),
    )


@documents_bp.route("/parse-pdf", methods=["POST"])
def parse_pdf():
    """Extract plain text from an uploaded PDF, DOC or DOCX resume."""

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise BadRequest("No file uploaded. Please select a resume file.")

    data = upload.read()
    if not data:
        raise BadRequest("The uploaded file appears to be empty. Please upload a valid resume file.")
    if upload.mimetype not in SUPPORTED_MIMETYPES:
        raise BadRequest("Only PDF, DOC, and DOCX files are allowed.")

    try:
        text = extract_text(data, upload.mimetype)
    except (UnsupportedDocument, DocumentExtractionError) as exc:
        raise BadRequest(str(exc)) from exc

    if len(text) < MIN_RESUME_TEXT:
        raise BadRequest(
            "The extracted text is too short to be a valid resume. Please upload a complete resume file."
        )

    return (
        jsonify(
            {
                "success": True,
                "text": text,
                "fileName": upload.filename,
                "fileSize": len(data),
                "mimeType": upload.mimetype,
                "extractedLength": len(text),
            }
        ),
        HTTPStatus.OK,
    )
