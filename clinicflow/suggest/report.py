from __future__ import annotations

import logging
import os

from clinicflow.config import CLINIC_NAME, CLINICIAN_NAME
from clinicflow.errors import SuggestionServiceError, ValidationError

from . import client
from .prompts import REPORT_LANGUAGE_RULES, REPORT_SYSTEM, REPORT_USER

logger = logging.getLogger("clinicflow.suggest.report")

XRAY_REPORT_MODEL = os.getenv("XRAY_REPORT_MODEL", "gpt-4o")
XRAY_REPORT_MAX_OUTPUT_TOKENS = int(os.getenv("XRAY_REPORT_MAX_OUTPUT_TOKENS", "1500"))


def _as_data_url(image: str, mime_type: str) -> str:
    raw = (image or "").strip()
    if raw.startswith("data:") or raw.startswith("http://") or raw.startswith("https://"):
        return raw
    # bare base64
    return f"data:{mime_type};base64,{raw}"


def generate_xray_report(image: str, issue: str, language: str = "en", mime_type: str = "image/jpeg") -> str:
    """
    Draft a plain-text radiology report for a captured image.

    `image` is a data URL, an http(s) URL, or bare base64. Raises
    SuggestionServiceError when the model call fails or returns no text.
    """
    if not (image or "").strip():
        raise ValidationError("An image is required to generate a report")
    rule = REPORT_LANGUAGE_RULES.get((language or "en").strip().lower())
    if rule is None:
        raise ValidationError(f"Unsupported report language: {language!r}")

    payload = {
        "model": XRAY_REPORT_MODEL,
        "input": [
            {"role": "system", "content": REPORT_SYSTEM.format(clinic=CLINIC_NAME, clinician=CLINICIAN_NAME)},
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": REPORT_USER.format(issue=issue or "unspecified", language_rule=rule)},
                    {"type": "input_image", "image_url": _as_data_url(image, mime_type)},
                ],
            },
        ],
        "max_output_tokens": XRAY_REPORT_MAX_OUTPUT_TOKENS,
    }
    try:
        text = client.call_response(payload, "xray_report")
    except Exception as e:
        raise SuggestionServiceError(f"AI Analysis Error: {e}") from e
    text = (text or "").strip()
    if not text:
        raise SuggestionServiceError("No text content returned from AI.")
    return text
