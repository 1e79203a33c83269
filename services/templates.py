"""Resume layout templates stored as JSON files on disk."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Optional

from flask import current_app

from services import ai

logger = logging.getLogger(__name__)


def _templates_dir(kind: str) -> str:
    return os.path.join(current_app.config.get("TEMPLATES_DIR", "resume_templates"), kind)


def _read_json(path: str) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.warning("Skipping unreadable template %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Skipping template %s: expected an object", path)
        return None
    return data


def _sort_key(filename: str) -> tuple:
    match = re.search(r"\d+", filename)
    return (int(match.group()) if match else 0, filename)


def _load_dir(kind: str) -> list[dict]:
    directory = _templates_dir(kind)
    if not os.path.isdir(directory):
        return []
    names = sorted((name for name in os.listdir(directory) if name.endswith(".json")), key=_sort_key)
    templates = []
    for name in names:
        data = _read_json(os.path.join(directory, name))
        if data is not None:
            templates.append(data)
    return templates


def base_templates() -> list[dict]:
    return _load_dir("base")


def load_generated() -> list[dict]:
    """Generated variations ordered by the first number in their file name."""

    return _load_dir("generated")


def generate_variations() -> int:
    """Write five variations of every base template; return how many were written."""

    output_dir = _templates_dir("generated")
    os.makedirs(output_dir, exist_ok=True)

    total = 0
    for base in base_templates():
        base_id = base.get("id") or "template"
        logger.info("Generating variations for %s", base.get("name", base_id))
        for number, variation in enumerate(ai.template_variations(base), start=1):
            variation_id = f"{base_id}_var_{number}"
            record = dict(variation, id=variation_id, base_template=base_id, variation_number=number)
            with open(os.path.join(output_dir, f"{variation_id}.json"), "w", encoding="utf-8") as handle:
                json.dump(record, handle, indent=2)
            total += 1

    logger.info("Generated %d template variations", total)
    return total


def load_template(template_id: str) -> Optional[dict]:
    for template in base_templates() + load_generated():
        if template.get("id") == template_id:
            return template
    return None
