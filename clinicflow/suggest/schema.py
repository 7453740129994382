from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from clinicflow.calendar_utils import WEEKDAY_NAMES
from clinicflow.config import AI_THERAPIES
from clinicflow.models import DaySuggestion

PAIN_CATEGORIES = [
    "Neuropathic",
    "Mechanical",
    "Inflammatory",
    "Post-Surgical",
    "Chronic/Central",
]


class PlanSuggestion(BaseModel):
    days: List[DaySuggestion] = Field(default_factory=list)


class PainCategory(BaseModel):
    subject: str
    count: int = Field(0, ge=0)
    full_mark: int = Field(0, ge=0)


class PainAnalysis(BaseModel):
    categories: List[PainCategory] = Field(default_factory=list)


def plan_json_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "days": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "day_name": {"type": "string", "enum": list(WEEKDAY_NAMES)},
                        "sessions": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "additionalProperties": False,
                                "properties": {
                                    "name": {"type": "string", "enum": list(AI_THERAPIES)},
                                    "duration": {"type": "integer"},
                                    "notes": {"type": "string"},
                                },
                                "required": ["name", "duration", "notes"],
                            },
                        },
                    },
                    "required": ["day_name", "sessions"],
                },
            },
        },
        "required": ["days"],
    }


def pain_json_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "categories": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "subject": {"type": "string", "enum": list(PAIN_CATEGORIES)},
                        "count": {"type": "integer"},
                        "full_mark": {"type": "integer"},
                    },
                    "required": ["subject", "count", "full_mark"],
                },
            },
        },
        "required": ["categories"],
    }
