"""
Session merge engine: copy-previous-day and AI suggestion merge.

Both operations take a Patient value and return a new one. Suggestions are keyed by
weekday name; they are matched against the patient's expanded calendar through
calendar_utils.weekday_of so the planner and the adherence calculator agree on what
day a date is.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from clinicflow.calendar_utils import (
    expand_dates,
    normalize_weekday,
    previous_date_in,
    to_date_key,
    weekday_of,
)
from clinicflow.models import DaySuggestion, Patient, SuggestedSession, TherapySession
from clinicflow.plan_store import find_plan, new_session, replace_sessions, upsert_sessions
from clinicflow.providers import IdGenerator

logger = logging.getLogger("clinicflow.merge")


@dataclass
class MergeResult:
    patient: Patient
    added: int = 0
    created_dates: List[str] = field(default_factory=list)
    appended_dates: List[str] = field(default_factory=list)
    skipped_dates: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.added > 0

    def summary(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "created_dates": list(self.created_dates),
            "appended_dates": list(self.appended_dates),
            "skipped_dates": list(self.skipped_dates),
            "error": self.error,
        }


def plan_weeks(dates: Sequence[str]) -> int:
    """Weeks to ask the suggestion service for: ceil(days / 7), at least 1."""
    return max(1, math.ceil(len(dates) / 7))


# =========================
# Copy previous day
# =========================

def copy_previous_day(
    patient: Patient,
    selected_date: str,
    ids: IdGenerator,
    max_days: Optional[int] = None,
) -> Patient:
    """
    Clone the previous calendar day's sessions onto selected_date.

    Clones get fresh ids and status "pending" and REPLACE whatever the selected
    day had. No-op for the first day in range, a date outside the range, or when
    the previous day has no plan.
    """
    key = to_date_key(selected_date)
    dates = expand_dates(patient.start_date, patient.end_date, max_days)
    prev_key = previous_date_in(dates, key)
    if prev_key is None:
        return patient
    prev_plan = find_plan(patient, prev_key)
    if prev_plan is None:
        return patient

    clones = [
        s.model_copy(update={"id": ids.new_id(), "status": "pending"})
        for s in prev_plan.sessions
    ]
    logger.info(
        "merge.copy_previous patient_id=%s from=%s to=%s sessions=%s",
        patient.id,
        prev_key,
        key,
        len(clones),
    )
    return replace_sessions(patient, key, clones, ids)


# =========================
# AI suggestion merge
# =========================

def _get(obj: Any, *names: str) -> Any:
    for name in names:
        if isinstance(obj, dict):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return None


def _coerce_session(raw: Any) -> Optional[SuggestedSession]:
    if isinstance(raw, SuggestedSession):
        return raw
    name = _get(raw, "name")
    duration = _get(raw, "duration", "duration_minutes", "durationMinutes")
    notes = _get(raw, "notes")
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        minutes = int(round(float(duration)))
    except (TypeError, ValueError):
        return None
    if minutes <= 0:
        return None
    return SuggestedSession(name=name.strip(), duration=minutes, notes=str(notes or ""))


def coerce_suggestions(raw: Any) -> List[DaySuggestion]:
    """
    Lenient read of a suggestion payload (models or plain dicts, camelCase or
    snake_case keys). Entries with an unknown weekday or no usable sessions are
    dropped; a non-list payload yields [].
    """
    if not isinstance(raw, (list, tuple)):
        return []
    out: List[DaySuggestion] = []
    for item in raw:
        day_raw = _get(item, "day_name", "dayName")
        day = normalize_weekday(day_raw) if isinstance(day_raw, str) else None
        if day is None:
            logger.warning("merge.suggestion_dropped reason=bad_day day=%r", day_raw)
            continue
        sessions_raw = _get(item, "sessions")
        if not isinstance(sessions_raw, (list, tuple)):
            continue
        sessions = [s for s in (_coerce_session(r) for r in sessions_raw) if s is not None]
        if not sessions:
            continue
        out.append(DaySuggestion(day_name=day, sessions=sessions))
    return out


def _name_key(name: str) -> str:
    # "Ultrasound" and "ultrasound " count as the same therapy when merging
    return (name or "").strip().casefold()


def merge_suggestions(
    patient: Patient,
    suggestions: Any,
    ids: IdGenerator,
    max_days: Optional[int] = None,
) -> MergeResult:
    """
    Merge weekday-keyed suggestions into every matching date of the course.

    - date without a plan: create one with the suggested sessions
    - date with a plan that already has ANY of the suggested therapy names: skip
    - otherwise: append the suggested sessions

    Re-running will not re-add a therapy name already present on a date, but will
    add names that are new. Empty/malformed suggestions change nothing.
    """
    by_day: Dict[str, DaySuggestion] = {}
    for suggestion in coerce_suggestions(suggestions):
        # first suggestion for a weekday wins
        by_day.setdefault(suggestion.day_name, suggestion)

    result = MergeResult(patient=patient)
    if not by_day:
        logger.info("merge.suggestions patient_id=%s added=0 reason=empty", patient.id)
        return result

    current = patient
    for date_key in expand_dates(patient.start_date, patient.end_date, max_days):
        suggestion = by_day.get(weekday_of(date_key))
        if suggestion is None:
            continue
        fresh: List[TherapySession] = [
            new_session(ids, s.name, s.duration, s.notes) for s in suggestion.sessions
        ]
        existing = find_plan(current, date_key)
        if existing is None:
            current = upsert_sessions(current, date_key, fresh, ids)
            result.created_dates.append(date_key)
        else:
            existing_names = {_name_key(s.name) for s in existing.sessions}
            if any(_name_key(s.name) in existing_names for s in fresh):
                result.skipped_dates.append(date_key)
                continue
            current = upsert_sessions(current, date_key, fresh, ids)
            result.appended_dates.append(date_key)
        result.added += len(fresh)

    result.patient = current
    logger.info(
        "merge.suggestions patient_id=%s added=%s created=%s appended=%s skipped=%s",
        patient.id,
        result.added,
        len(result.created_dates),
        len(result.appended_dates),
        len(result.skipped_dates),
    )
    return result
