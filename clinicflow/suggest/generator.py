from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from clinicflow.calendar_utils import WEEKDAY_NAMES, normalize_weekday
from clinicflow.config import AI_THERAPIES, CLINIC_NAME
from clinicflow.errors import SuggestionServiceError
from clinicflow.merge import coerce_suggestions
from clinicflow.models import DaySuggestion

from . import client
from .prompts import PLAN_SYSTEM, PLAN_USER
from .schema import PlanSuggestion, plan_json_schema

logger = logging.getLogger("clinicflow.suggest")

SUGGEST_MODEL = os.getenv("SUGGEST_MODEL", "gpt-4o-mini")
SUGGEST_FALLBACK_MODEL = os.getenv("SUGGEST_FALLBACK_MODEL", "gpt-4.1-mini")
SUGGEST_MAX_OUTPUT_TOKENS = int(os.getenv("SUGGEST_MAX_OUTPUT_TOKENS", "2000"))
SUGGEST_DEBUG_LOG_PROMPTS = os.getenv("SUGGEST_DEBUG_LOG_PROMPTS", "0").strip() == "1"


def _weekday_list(scheduled_weekdays: Optional[Iterable[str]]) -> List[str]:
    days: List[str] = []
    for raw in scheduled_weekdays or []:
        day = normalize_weekday(raw)
        if day and day not in days:
            days.append(day)
    return days or list(WEEKDAY_NAMES)


def _build_payload(condition: str, weeks: int, weekdays: List[str], model: str) -> Dict[str, Any]:
    user = PLAN_USER.format(
        condition=condition,
        weeks=weeks,
        clinic=CLINIC_NAME,
        weekdays=", ".join(weekdays),
        therapies=", ".join(f"'{t}'" for t in AI_THERAPIES),
    )
    if SUGGEST_DEBUG_LOG_PROMPTS:
        logger.info("Suggest prompt: %s", user)
    return {
        "model": model,
        "input": [
            {"role": "system", "content": PLAN_SYSTEM.format(clinic=CLINIC_NAME)},
            {"role": "user", "content": user},
        ],
        "temperature": 0.2,
        "max_output_tokens": SUGGEST_MAX_OUTPUT_TOKENS,
        "text": {
            "format": {
                "type": "json_schema",
                "name": "physio_plan",
                "schema": plan_json_schema(),
                "strict": True,
            },
        },
    }


def parse_plan(raw_json: str) -> List[DaySuggestion]:
    """Malformed output is not an error: it just means no suggestions."""
    try:
        data = json.loads(raw_json or "")
    except ValueError:
        logger.warning("suggest.parse_failed chars=%s", len(raw_json or ""))
        return []
    if isinstance(data, list):
        # bare array (older prompt shape)
        return coerce_suggestions(data)
    if not isinstance(data, dict):
        return []
    try:
        return PlanSuggestion.model_validate(data).days
    except PydanticValidationError:
        return coerce_suggestions(data.get("days"))


def suggest_sessions(
    condition: str,
    weeks: int = 1,
    scheduled_weekdays: Optional[Iterable[str]] = None,
) -> List[DaySuggestion]:
    """
    Ask the model for a weekday-keyed physiotherapy plan.

    Returns [] for an empty condition or unusable output. Raises
    SuggestionServiceError only when both the primary and fallback model calls fail.
    """
    condition = (condition or "").strip()
    if not condition:
        return []
    weeks = max(1, int(weeks or 1))
    weekdays = _weekday_list(scheduled_weekdays)

    payload = _build_payload(condition, weeks, weekdays, SUGGEST_MODEL)
    try:
        raw_json = client.call_response(payload, "plan")
    except Exception as e:
        logger.warning("Suggest plan failed; retrying with fallback model: %s", e)
        payload["model"] = SUGGEST_FALLBACK_MODEL
        try:
            raw_json = client.call_response(payload, "plan_fallback")
        except Exception as e2:
            raise SuggestionServiceError(f"Suggestion service unavailable: {e2}") from e2

    days = parse_plan(raw_json)
    logger.info("suggest.plan_parsed weeks=%s days=%s", weeks, len(days))
    return days
