"""
Daily plan operations over a Patient value.

Every function takes a Patient and returns a new Patient; the input is never mutated.
Lookups that miss (unknown date, unknown session id) return the patient unchanged:
the planner UI can race with deletions and that is not an error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from clinicflow.calendar_utils import to_date_key
from clinicflow.config import DEFAULT_SESSION_MINUTES, DEFAULT_THERAPY
from clinicflow.errors import ValidationError
from clinicflow.models import DailyPlan, Patient, SessionStatusLiteral, TherapySession
from clinicflow.providers import IdGenerator

logger = logging.getLogger("clinicflow.plan_store")

MUTABLE_SESSION_FIELDS = ("name", "duration", "notes", "status")


def _plan_index(patient: Patient, date_key: str) -> Optional[int]:
    for idx, plan in enumerate(patient.daily_plans):
        if plan.date == date_key:
            return idx
    return None


def _insert_plan(patient: Patient, plan: DailyPlan) -> None:
    # keep daily_plans ordered by date
    plans = list(patient.daily_plans)
    pos = len(plans)
    for idx, existing in enumerate(plans):
        if existing.date > plan.date:
            pos = idx
            break
    plans.insert(pos, plan)
    patient.daily_plans = plans


def find_plan(patient: Patient, date_key: str) -> Optional[DailyPlan]:
    idx = _plan_index(patient, to_date_key(date_key))
    if idx is None:
        return None
    return patient.daily_plans[idx]


def new_session(
    ids: IdGenerator,
    name: str,
    duration: int,
    notes: str = "",
) -> TherapySession:
    return TherapySession(
        id=ids.new_id(),
        name=(name or "").strip() or DEFAULT_THERAPY,
        duration=duration,
        notes=notes or "",
        status="pending",
    )


def upsert_sessions(
    patient: Patient,
    date_key: str,
    sessions: Iterable[TherapySession],
    ids: IdGenerator,
) -> Patient:
    """
    Append sessions to the plan for date_key, creating the plan if absent.
    This is a plain append: the same sessions passed twice appear twice.
    """
    key = to_date_key(date_key)
    to_add = [s.model_copy(deep=True) for s in sessions]
    updated = patient.model_copy(deep=True)
    idx = _plan_index(updated, key)
    if idx is None:
        _insert_plan(updated, DailyPlan(id=ids.new_id(), date=key, sessions=to_add))
    else:
        plan = updated.daily_plans[idx]
        plan.sessions = list(plan.sessions) + to_add
    return updated


def replace_sessions(
    patient: Patient,
    date_key: str,
    sessions: Iterable[TherapySession],
    ids: IdGenerator,
) -> Patient:
    key = to_date_key(date_key)
    new_list = [s.model_copy(deep=True) for s in sessions]
    updated = patient.model_copy(deep=True)
    idx = _plan_index(updated, key)
    if idx is None:
        _insert_plan(updated, DailyPlan(id=ids.new_id(), date=key, sessions=new_list))
    else:
        updated.daily_plans[idx].sessions = new_list
    return updated


def add_session(
    patient: Patient,
    date_key: str,
    ids: IdGenerator,
    name: str = DEFAULT_THERAPY,
    duration: int = DEFAULT_SESSION_MINUTES,
    notes: str = "",
) -> Patient:
    try:
        session = new_session(ids, name, duration, notes)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid session: {e.errors()[0].get('msg')}")
    return upsert_sessions(patient, date_key, [session], ids)


def update_session(
    patient: Patient,
    date_key: str,
    session_id: str,
    updates: Dict[str, Any],
) -> Patient:
    """
    Apply a partial update to one session. Only name/duration/notes/status are
    mutable; other keys (id, unknown fields) are ignored.
    """
    key = to_date_key(date_key)
    idx = _plan_index(patient, key)
    if idx is None:
        return patient
    allowed = {k: v for k, v in (updates or {}).items() if k in MUTABLE_SESSION_FIELDS}
    ignored = set((updates or {}).keys()) - set(allowed.keys())
    if ignored:
        logger.debug("plan_store.update_session ignored_fields=%s", sorted(ignored))

    updated = patient.model_copy(deep=True)
    for session in updated.daily_plans[idx].sessions:
        if session.id != session_id:
            continue
        try:
            for field, value in allowed.items():
                setattr(session, field, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid session update: {e.errors()[0].get('msg')}")
        return updated
    return patient


def delete_session(patient: Patient, date_key: str, session_id: str) -> Patient:
    """Remove a session by id. The plan stays even when it becomes empty."""
    key = to_date_key(date_key)
    idx = _plan_index(patient, key)
    if idx is None:
        return patient
    sessions = patient.daily_plans[idx].sessions
    if not any(s.id == session_id for s in sessions):
        return patient
    updated = patient.model_copy(deep=True)
    plan = updated.daily_plans[idx]
    plan.sessions = [s for s in plan.sessions if s.id != session_id]
    return updated


# =========================
# Session status toggles
# =========================
#
# Each action only flips between its own target and "pending":
#   mark completed: completed -> pending, pending/missed -> completed
#   mark missed:    missed -> pending,    pending/completed -> missed

def toggle_completed(status: SessionStatusLiteral) -> SessionStatusLiteral:
    return "pending" if status == "completed" else "completed"


def toggle_missed(status: SessionStatusLiteral) -> SessionStatusLiteral:
    return "pending" if status == "missed" else "missed"


_TOGGLES = {
    "completed": toggle_completed,
    "missed": toggle_missed,
}


def toggle_session(patient: Patient, date_key: str, session_id: str, target: str) -> Patient:
    toggle = _TOGGLES.get((target or "").strip().lower())
    if toggle is None:
        raise ValidationError(f"Unknown toggle target: {target!r} (expected 'completed' or 'missed')")
    plan = find_plan(patient, date_key)
    if plan is None:
        return patient
    for session in plan.sessions:
        if session.id == session_id:
            return update_session(patient, date_key, session_id, {"status": toggle(session.status)})
    return patient


def all_sessions(patient: Patient) -> List[TherapySession]:
    out: List[TherapySession] = []
    for plan in patient.daily_plans:
        out.extend(plan.sessions)
    return out
