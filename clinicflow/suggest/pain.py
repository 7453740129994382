from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError as PydanticValidationError

from . import client
from .prompts import PAIN_SYSTEM, PAIN_USER
from .schema import PAIN_CATEGORIES, PainAnalysis, pain_json_schema

logger = logging.getLogger("clinicflow.suggest.pain")

PAIN_MODEL = os.getenv("PAIN_MODEL", "gpt-4o-mini")


def analyze_pain_patterns(conditions: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Count physiotherapy conditions per pain category.
    No conditions means no call. Any failure or malformed output yields [].
    """
    items = [c.strip() for c in conditions if c and c.strip()]
    if not items:
        return []

    payload = {
        "model": PAIN_MODEL,
        "input": [
            {"role": "system", "content": PAIN_SYSTEM},
            {
                "role": "user",
                "content": PAIN_USER.format(
                    conditions=", ".join(items),
                    categories=", ".join(f"'{c}'" for c in PAIN_CATEGORIES),
                    total=len(items),
                ),
            },
        ],
        "temperature": 0.0,
        "max_output_tokens": 600,
        "text": {
            "format": {
                "type": "json_schema",
                "name": "pain_patterns",
                "schema": pain_json_schema(),
                "strict": True,
            },
        },
    }
    try:
        raw = client.call_response(payload, "pain")
    except Exception as e:
        logger.warning("Pain pattern analysis failed: %s", e)
        return []
    try:
        analysis = PainAnalysis.model_validate(json.loads(raw or ""))
    except (ValueError, PydanticValidationError):
        return []
    return [c.model_dump() for c in analysis.categories]
