"""Resume document text extraction and PDF rendering."""

from __future__ import annotations

import logging
import re
import zipfile
from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

import docx
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer

logger = logging.getLogger(__name__)

PDF_MIMETYPE = "application/pdf"
DOC_MIMETYPE = "application/msword"
DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SUPPORTED_MIMETYPES = (PDF_MIMETYPE, DOC_MIMETYPE, DOCX_MIMETYPE)

DEFAULT_SECTION_ORDER = ["Work", "Skills", "Education", "Projects"]


class UnsupportedDocument(ValueError):
    """The uploaded file type cannot be read."""


class DocumentExtractionError(ValueError):
    """The file was readable but produced no text."""


def _pdf_text(data: bytes) -> str:
    reader = PdfReader(BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _docx_text(data: bytes) -> str:
    document = docx.Document(BytesIO(data))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _doc_text(data: bytes) -> str:
    # Legacy .doc is binary; keep runs of printable characters.
    text = data.decode("latin-1")
    text = re.sub(r"[^\x20-\x7E\n\r\t]+", " ", text)
    return re.sub(r"[ \t]+", " ", text)


def extract_text(data: bytes, mimetype: str) -> str:
    """Return the plain text of a PDF, DOCX or DOC upload."""

    readers = {
        PDF_MIMETYPE: _pdf_text,
        DOCX_MIMETYPE: _docx_text,
        DOC_MIMETYPE: _doc_text,
    }
    reader = readers.get(mimetype)
    if reader is None:
        raise UnsupportedDocument("Unsupported file type. Please upload a PDF or Word document.")

    try:
        text = reader(data)
    except (PdfReadError, PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        logger.warning("Failed to read %s document: %s", mimetype, exc)
        raise DocumentExtractionError(
            "Failed to extract text from the document. Please ensure it is not corrupted."
        ) from exc

    text = text.strip()
    if not text:
        raise DocumentExtractionError("No text could be extracted from the document.")
    return text


def _color(value: Optional[str], default):
    if not value:
        return default
    try:
        return colors.HexColor(value)
    except ValueError:
        return default


def _styles(template: dict) -> dict:
    size = float(template.get("font_size") or 10)
    primary = _color(template.get("primary_color"), colors.black)
    secondary = _color(template.get("secondary_color"), colors.grey)
    accent = _color(template.get("accent_color"), colors.black)
    leading = size * float(template.get("line_height") or 1.3)

    return {
        "name": ParagraphStyle("Name", fontName="Helvetica-Bold", fontSize=size + 8,
                               leading=size + 12, alignment=TA_CENTER, textColor=primary),
        "contact": ParagraphStyle("Contact", fontName="Helvetica", fontSize=size - 1,
                                  leading=size + 2, alignment=TA_CENTER, textColor=secondary),
        "section": ParagraphStyle("Section", fontName="Helvetica-Bold", fontSize=size + 2,
                                  leading=size + 5, textColor=accent, spaceBefore=6),
        "role": ParagraphStyle("Role", fontName="Helvetica-Bold", fontSize=size,
                               leading=leading, textColor=primary),
        "meta": ParagraphStyle("Meta", fontName="Helvetica-Oblique", fontSize=size - 1,
                               leading=leading, textColor=secondary),
        "body": ParagraphStyle("Body", fontName="Helvetica", fontSize=size,
                               leading=leading, textColor=primary),
        "bullet": ParagraphStyle("Bullet", fontName="Helvetica", fontSize=size,
                                 leading=leading, leftIndent=10, textColor=primary),
        "accent": accent,
    }


def _dates(item: dict) -> str:
    start = item.get("startDate") or ""
    end = item.get("endDate") or ("Present" if start else "")
    return f"{start} - {end}" if start else end


def render_resume_pdf(resume: dict, template: Optional[dict] = None) -> bytes:
    """Render resume data as a single-column PDF and return its bytes."""

    template = template or {}
    styles = _styles(template)
    personal = resume.get("personalInfo") or {}
    story = []

    def heading(title):
        story.append(Paragraph(escape(title.upper()), styles["section"]))
        story.append(HRFlowable(width="100%", thickness=0.5, color=styles["accent"], spaceAfter=3))

    story.append(Paragraph(escape(personal.get("fullName") or ""), styles["name"]))
    contact = [
        personal.get(key)
        for key in ("email", "phone", "location", "linkedin", "github")
        if personal.get(key)
    ]
    if contact:
        story.append(Paragraph(escape(" | ".join(contact)), styles["contact"]))

    if personal.get("professionalSummary"):
        heading("Summary")
        story.append(Paragraph(escape(personal["professionalSummary"]), styles["body"]))

    def work():
        jobs = resume.get("workExperience") or []
        if not jobs:
            return
        heading("Work Experience")
        for job in jobs:
            title = " at ".join(part for part in (job.get("jobTitle"), job.get("company")) if part)
            story.append(Paragraph(escape(title), styles["role"]))
            meta = " | ".join(part for part in (_dates(job), job.get("location")) if part)
            if meta:
                story.append(Paragraph(escape(meta), styles["meta"]))
            for achievement in job.get("achievements") or []:
                if achievement:
                    story.append(Paragraph(f"• {escape(achievement)}", styles["bullet"]))
            if job.get("technologies"):
                story.append(Paragraph(
                    f"<b>Technologies:</b> {escape(', '.join(job['technologies']))}", styles["body"]
                ))
            story.append(Spacer(1, 4))

    def skills():
        items = [skill for skill in resume.get("skills") or [] if skill]
        if items:
            heading("Skills")
            story.append(Paragraph(escape(", ".join(items)), styles["body"]))

    def education():
        entries = resume.get("education") or []
        if not entries:
            return
        heading("Education")
        for entry in entries:
            story.append(Paragraph(escape(entry.get("degree") or ""), styles["role"]))
            meta = " | ".join(part for part in (entry.get("institution"), _dates(entry)) if part)
            if meta:
                story.append(Paragraph(escape(meta), styles["meta"]))

    def projects():
        entries = resume.get("projects") or []
        if not entries:
            return
        heading("Projects")
        for project in entries:
            story.append(Paragraph(escape(project.get("name") or ""), styles["role"]))
            if project.get("description"):
                story.append(Paragraph(escape(project["description"]), styles["body"]))

    sections = {"Work": work, "Skills": skills, "Education": education, "Projects": projects}
    for name in template.get("section_order") or DEFAULT_SECTION_ORDER:
        section = sections.get(name)
        if section:
            section()

    margins = template.get("margins") or {}
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=margins.get("left", 40),
        rightMargin=margins.get("right", 40),
        topMargin=margins.get("top", 40),
        bottomMargin=margins.get("bottom", 40),
        title=personal.get("fullName") or "Resume",
    )
    doc.build(story)
    return buffer.getvalue()
