"""OpenAI-backed resume content generation with template fallbacks."""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Any, Optional

import openai
from flask import current_app
from openai import OpenAI
from werkzeug.exceptions import BadRequest, InternalServerError

from utils.errors import AIServiceNotConfigured

logger = logging.getLogger(__name__)

IMPROVE_TEXT_PROMPT = (
    "You are a professional resume coach. Rewrite the following resume section to be "
    "concise, action-oriented, and ATS-friendly. Keep it in first-person neutral (no 'I'). "
    "Return improved bullet points or sentences directly."
)

ANALYSIS_PROMPT = """You are a senior recruiter and ATS expert. Analyze the resume below. Return JSON with the following fields:
- overall_score (0-100, based on clarity, structure, ATS keyword match, and grammar)
- strengths (list of 3-5 strong points)
- weaknesses (list of 3-5 weak points)
- ats_keywords_missing (list of keywords relevant to the candidate's field that are missing)
- suggestions (actionable bullet points to improve the resume)

Return only valid JSON without any additional text or formatting."""

SUGGESTIONS_PROMPT = (
    "You are a professional resume writer and career advisor. "
    "Provide accurate, relevant, and professional suggestions."
)

COVER_LETTER_PROMPT = "You are a professional cover letter writer. Be concise and effective."

MAX_RESUME_CHARS = 3000
SUGGESTION_LIMITS = {"achievements": 5, "technologies": 8}
COVER_LETTER_KINDS = ("enhance", "generate", "full")
VARIATION_COUNT = 5

PROFESSIONAL_FONTS = [
    "Inter", "Roboto", "Lato", "Montserrat", "Open Sans", "Source Sans Pro",
    "Poppins", "Nunito Sans", "Work Sans", "DM Sans",
]
PRIMARY_COLORS = ["#000000", "#1f2937", "#111827", "#0f172a", "#1e293b", "#374151"]
SECONDARY_COLORS = ["#555555", "#6b7280", "#9ca3af", "#64748b", "#4b5563", "#525252"]
ACCENT_COLORS = [
    "#2563eb", "#10b981", "#f59e0b", "#6366f1", "#1e40af",
    "#7c3aed", "#dc2626", "#06b6d4", "#ec4899", "#059669",
]
BULLET_STYLES = ["dash", "circle", "square", "none"]
SPACING_OPTIONS = ["compact", "normal", "relaxed", "wide"]
SECTION_ORDERS = [
    ["Work", "Skills", "Education", "Projects"],
    ["Skills", "Work", "Education", "Projects"],
    ["Projects", "Skills", "Work", "Education"],
    ["Education", "Work", "Projects", "Skills"],
    ["Work", "Education", "Skills", "Projects"],
]


def get_client() -> OpenAI:
    """Return the app's OpenAI client, creating it on first use."""

    client = current_app.extensions.get("openai_client")
    if client is not None:
        return client

    api_key = current_app.config.get("OPENAI_API_KEY")
    if not api_key:
        raise AIServiceNotConfigured()

    client = OpenAI(
        api_key=api_key,
        timeout=current_app.config.get("OPENAI_TIMEOUT", 30),
        max_retries=current_app.config.get("OPENAI_MAX_RETRIES", 2),
    )
    current_app.extensions["openai_client"] = client
    return client


def _chat(
    system: str,
    user: str,
    *,
    max_tokens: int,
    temperature: float,
    model: Optional[str] = None,
) -> str:
    response = get_client().chat.completions.create(
        model=model or current_app.config.get("OPENAI_MODEL", "gpt-4o-mini"),
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    if not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()


def _strip_code_fence(text: str) -> str:
    match = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
    return match.group(1) if match else text


# Text improvement

def fallback_improvement(text: str, section: str) -> str:
    improved = text.strip()
    improved = re.sub(r"\b(very|really|quite|extremely)\s+", "", improved, flags=re.IGNORECASE)
    improved = re.sub(r"\s+", " ", improved)

    if section == "professionalSummary":
        if not re.match(r"^(Experienced|Skilled|Dedicated|Results-driven|Professional)", improved, re.IGNORECASE):
            improved = f"Experienced professional with {improved.lower()}"
    return improved


def improve_text(text: str, section: str) -> dict:
    get_client()
    try:
        improved = _chat(
            IMPROVE_TEXT_PROMPT,
            f"Section: {section}\n\nText to improve: {text}",
            max_tokens=500,
            temperature=0.7,
        )
    except openai.OpenAIError:
        logger.warning("Text improvement fell back to rule-based rewrite", exc_info=True)
        return {
            "improvedText": fallback_improvement(text, section),
            "fallback": True,
            "message": "AI service is currently unavailable. Used basic improvement instead.",
        }
    return {"improvedText": improved or text}


# Resume analysis

def fallback_analysis(resume_text: str) -> dict:
    word_count = len(resume_text.split())
    has_contact = bool(re.search(r"\b(?:email|phone|linkedin|github)\b", resume_text, re.IGNORECASE))
    has_experience = bool(re.search(r"\b(?:experience|work|job|position|role)\b", resume_text, re.IGNORECASE))
    has_education = bool(re.search(r"\b(?:education|degree|university|college|school)\b", resume_text, re.IGNORECASE))
    has_skills = bool(re.search(r"\b(?:skills|technologies|programming|software)\b", resume_text, re.IGNORECASE))

    score = 50
    if has_contact:
        score += 10
    if has_experience:
        score += 15
    if has_education:
        score += 10
    if has_skills:
        score += 10
    if word_count > 200:
        score += 5

    weaknesses = [
        None if has_contact else "Missing or unclear contact information",
        None if has_experience else "Work experience section needs improvement",
        None if has_education else "Education section could be enhanced",
        "Resume content appears too brief" if word_count < 200 else None,
    ]
    return {
        "overall_score": min(score, 85),
        "strengths": [
            "Contact information is present" if has_contact else "Resume structure is readable",
            "Work experience section included" if has_experience else "Content is well-organized",
            "Technical skills are mentioned" if has_skills else "Professional presentation",
        ],
        "weaknesses": [item for item in weaknesses if item],
        "ats_keywords_missing": [
            "industry-specific keywords",
            "technical skills",
            "action verbs",
            "quantifiable achievements",
        ],
        "suggestions": [
            "Add more specific technical skills relevant to your target role",
            "Include quantifiable achievements with numbers and percentages",
            "Use strong action verbs to describe your accomplishments",
            "Ensure all contact information is clearly visible",
            "Tailor keywords to match job descriptions in your field",
        ],
    }


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _analysis_response(result: dict, *, fallback: bool = False) -> dict:
    try:
        score = int(round(float(result.get("overall_score", 0))))
    except (TypeError, ValueError):
        score = 0
    score = min(max(score, 0), 100)
    response = {
        "overallScore": score,
        "contentScore": score,
        "formattingScore": score,
        "keywordScore": score,
        "atsScore": score,
        "strengths": _as_list(result.get("strengths")),
        "weaknesses": _as_list(result.get("weaknesses")),
        "missingKeywords": _as_list(result.get("ats_keywords_missing")),
        "suggestions": _as_list(result.get("suggestions")),
    }
    if fallback:
        response["fallback"] = True
    return response


def analyze_resume(resume_text: str) -> dict:
    get_client()
    truncated = resume_text
    if len(resume_text) > MAX_RESUME_CHARS:
        truncated = resume_text[:MAX_RESUME_CHARS] + "\n\n[Text truncated for analysis]"

    try:
        raw = _chat(
            ANALYSIS_PROMPT,
            f"Resume to analyze:\n\n{truncated}",
            max_tokens=800,
            temperature=0.2,
        )
    except openai.OpenAIError:
        logger.warning("Resume analysis fell back to heuristic scoring", exc_info=True)
        return _analysis_response(fallback_analysis(resume_text), fallback=True)

    if not raw:
        raise InternalServerError("Unable to analyze this resume. Please try again.")
    try:
        result = json.loads(_strip_code_fence(raw))
    except ValueError as exc:
        logger.error("Resume analysis returned non-JSON output")
        raise InternalServerError("Unable to analyze this resume. Please try again.") from exc
    if not isinstance(result, dict):
        raise InternalServerError("Unable to analyze this resume. Please try again.")
    return _analysis_response(result)


# Work experience suggestions

def _suggestion_prompt(job_title: str, company: str, kind: str, industry: Optional[str]) -> str:
    where = f" in the {industry} industry" if industry else ""
    if kind == "achievements":
        return (
            f"Generate 5 professional achievement bullet points for a {job_title} position at {company}{where}.\n\n"
            "Requirements:\n"
            "- Use action verbs and quantifiable results when possible\n"
            "- Focus on impact, leadership, and technical accomplishments\n"
            "- Keep each point concise (1-2 lines)\n"
            "- Make them specific to the role and industry\n"
            "- Use professional language\n\n"
            "Return only the bullet points, one per line, without bullet symbols or numbers."
        )
    return (
        f"Generate 5-8 relevant technologies and tools for a {job_title} position at {company}{where}.\n\n"
        "Requirements:\n"
        "- Include programming languages, frameworks, tools, and platforms\n"
        "- Focus on current, industry-standard technologies\n"
        "- Consider the specific role and company context\n"
        "- Include both technical and soft skills where appropriate\n\n"
        "Return only the technology names, one per line, without descriptions."
    )


def work_suggestions(job_title: str, company: str, kind: str, industry: Optional[str] = None) -> list[str]:
    if kind not in SUGGESTION_LIMITS:
        raise BadRequest("type must be one of: achievements, technologies.")
    get_client()
    try:
        content = _chat(
            SUGGESTIONS_PROMPT,
            _suggestion_prompt(job_title, company, kind, industry),
            max_tokens=500,
            temperature=0.7,
        )
    except openai.OpenAIError as exc:
        logger.exception("Work suggestion generation failed")
        raise InternalServerError("Failed to generate AI suggestions") from exc

    if not content:
        raise InternalServerError("Failed to generate AI suggestions")
    lines = [line.strip() for line in content.splitlines()]
    return [line for line in lines if line][: SUGGESTION_LIMITS[kind]]


# Cover letters

def resume_summary(resume: dict) -> dict:
    personal = resume.get("personalInfo") or {}
    return {
        "name": personal.get("fullName") or "",
        "summary": (personal.get("professionalSummary") or "")[:200],
        "experience": [
            {
                "company": exp.get("company") or "",
                "position": exp.get("jobTitle") or "",
                "duration": f"{exp.get('startDate') or ''} - {exp.get('endDate') or 'Present'}",
                "achievements": (exp.get("achievements") or [])[:2],
            }
            for exp in (resume.get("workExperience") or [])[:2]
        ],
        "skills": (resume.get("skills") or [])[:5],
        "education": [
            {"degree": edu.get("degree") or "", "institution": edu.get("institution") or ""}
            for edu in (resume.get("education") or [])[:1]
        ],
    }


def fallback_cover_letter(resume: dict, company: str, position: str) -> str:
    name = (resume.get("personalInfo") or {}).get("fullName") or "Candidate"
    experience = (resume.get("workExperience") or [None])[0] or {}
    skills = ", ".join((resume.get("skills") or [])[:3])
    previous_role = f" at {experience['company']}" if experience.get("company") else ""

    return (
        "Dear Hiring Manager,\n\n"
        f"I am writing to express my strong interest in the {position} position at {company}. "
        f"With my background in {experience.get('jobTitle') or 'relevant experience'} and expertise in "
        f"{skills or 'key technologies'}, I am confident I would be a valuable addition to your team.\n\n"
        f"In my previous role{previous_role}, I have developed strong skills that align well with your "
        "requirements. My experience includes working with various technologies and delivering results "
        "that drive business success.\n\n"
        f"I am particularly drawn to {company} because of your reputation for innovation and excellence. "
        "I would welcome the opportunity to discuss how my skills and enthusiasm can contribute to your "
        "team's continued success.\n\n"
        "Thank you for considering my application. I look forward to hearing from you.\n\n"
        f"Sincerely,\n{name}"
    )


def cover_letter(
    resume: dict,
    job_description: str,
    company: str,
    position: str,
    kind: str = "generate",
    existing: Optional[str] = None,
) -> dict:
    if kind not in COVER_LETTER_KINDS:
        raise BadRequest('Invalid type parameter. Must be "enhance", "generate", or "full".')
    get_client()

    summary = json.dumps(resume_summary(resume))
    job = (job_description or "")[:500]
    if kind == "enhance":
        prompt = (
            f"Enhance this cover letter for {position} at {company}.\n\n"
            f"Job: {job}\nResume: {summary}\nDraft: {existing or ''}\n\n"
            "Improve language, highlight relevant experience, and ensure professional tone. "
            "Return only the enhanced cover letter."
        )
    else:
        prompt = (
            f"Create a professional cover letter for {position} at {company}.\n\n"
            f"Job: {job}\nCandidate: {summary}\n\n"
            "Write 3-4 paragraphs highlighting relevant experience and enthusiasm. "
            "Use actual name, no placeholders. Return only the cover letter text."
        )

    try:
        letter = _chat(COVER_LETTER_PROMPT, prompt, max_tokens=400, temperature=0.3)
    except openai.OpenAIError:
        logger.warning("Cover letter generation for %s at %s fell back to template", position, company, exc_info=True)
        return {
            "coverLetter": fallback_cover_letter(resume, company, position),
            "warning": "Generated using template due to AI service issues",
        }

    if not letter:
        logger.info("Empty cover letter from model; using template")
        return {"coverLetter": fallback_cover_letter(resume, company, position)}
    return {"coverLetter": letter}


# Template variations

def fallback_variations(base: dict, rng: Optional[random.Random] = None) -> list[dict]:
    rng = rng or random.Random()
    margins = base.get("margins") or {"top": 40, "bottom": 40, "left": 40, "right": 40}

    def jitter(value, step):
        return value + (step if rng.random() > 0.5 else -step)

    variations = []
    for index in range(VARIATION_COUNT):
        variation = dict(base)
        variation.update(
            {
                "name": f"{base.get('name', 'Template')} Variation {index + 1}",
                "font_family": rng.choice(PROFESSIONAL_FONTS),
                "font_size": jitter(base.get("font_size", 11), 1),
                "primary_color": rng.choice(PRIMARY_COLORS),
                "secondary_color": rng.choice(SECONDARY_COLORS),
                "accent_color": rng.choice(ACCENT_COLORS),
                "section_order": list(rng.choice(SECTION_ORDERS)),
                "bullet_style": rng.choice(BULLET_STYLES),
                "spacing": rng.choice(SPACING_OPTIONS),
                "margins": {
                    "top": jitter(margins.get("top", 40), 10),
                    "bottom": jitter(margins.get("bottom", 40), 10),
                    "left": jitter(margins.get("left", 40), 5),
                    "right": jitter(margins.get("right", 40), 5),
                },
                "line_height": round(jitter(base.get("line_height", 1.4), 0.1), 2),
                "section_spacing": jitter(base.get("section_spacing", 16), 4),
            }
        )
        variations.append(variation)
    return variations


def template_variations(base: dict) -> list[dict]:
    """Ask the model for five variations of ``base``; fall back to random ones."""

    system = (
        "You are a professional resume designer. Generate 5 variations for the given base template JSON.\n\n"
        "Rules:\n"
        "1. Modify font_family, colors, section_order, bullet_style, spacing, and margins\n"
        "2. Keep the same structure and required fields\n"
        f"3. Use professional fonts: {', '.join(PROFESSIONAL_FONTS)}\n"
        "4. Use modern color palettes (hex codes)\n"
        "5. Ensure good contrast and readability\n"
        "6. Vary section orders logically\n"
        "7. Return ONLY a JSON array of 5 template objects\n"
        "8. Each variation should be professional and distinct\n\n"
        "Base template to vary:"
    )
    try:
        raw = _chat(system, json.dumps(base, indent=2), max_tokens=3000, temperature=0.8)
        variations = json.loads(_strip_code_fence(raw))
        if (
            not isinstance(variations, list)
            or len(variations) != VARIATION_COUNT
            or not all(isinstance(item, dict) for item in variations)
        ):
            raise ValueError("Invalid response format from OpenAI")
    except (openai.OpenAIError, AIServiceNotConfigured, ValueError):
        logger.warning("Template variations for %s fell back to random generation", base.get("id"), exc_info=True)
        return fallback_variations(base)
    return variations
