from __future__ import annotations

import math
from typing import Tuple

from clinicflow.calendar_utils import weekday_of
from clinicflow.models import Patient

# Staged milestones for the radiology pathway.
XRAY_STAGE_PROGRESS = {
    "ordered": 10,
    "captured": 50,
    "reported": 100,
}


def session_counts(patient: Patient) -> Tuple[int, int]:
    """
    (completed, total) over plans that fall on a scheduled weekday.
    An empty schedule means every day counts.
    """
    scheduled = set(patient.scheduled_weekdays or [])
    completed = 0
    total = 0
    for plan in patient.daily_plans:
        if scheduled and weekday_of(plan.date) not in scheduled:
            continue
        total += len(plan.sessions)
        completed += sum(1 for s in plan.sessions if s.status == "completed")
    return completed, total


def progress(patient: Patient) -> int:
    """Completion percentage in [0, 100]."""
    if patient.service_type == "x-ray":
        if patient.xray_order is None:
            return 0
        return XRAY_STAGE_PROGRESS.get(patient.xray_order.status, 0)

    completed, total = session_counts(patient)
    if total == 0:
        return 0
    # half-up, not banker's rounding
    return int(math.floor(100 * completed / total + 0.5))
