from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import Field, ValidationError as PydanticValidationError

from clinicflow.calendar_utils import end_date_for, to_date_key
from clinicflow.config import DEFAULT_DURATION_DAYS
from clinicflow.errors import ValidationError
from clinicflow.models import (
    Patient,
    PatientStatusLiteral,
    ServiceTypeLiteral,
    StrictBaseModel,
)
from clinicflow.providers import Clock, IdGenerator
from clinicflow.xray import new_order

logger = logging.getLogger("clinicflow.patients")


class AdmissionForm(StrictBaseModel):
    """What the admission form collects."""
    name: str
    age: Optional[int] = Field(None, ge=0)
    phone: str = ""
    address: str = ""
    condition: str = ""
    start_date: Optional[str] = None  # defaults to today
    duration_days: int = DEFAULT_DURATION_DAYS
    service_type: ServiceTypeLiteral = "physiotherapy"
    scheduled_weekdays: List[str] = Field(default_factory=list)
    xray_issue: str = ""
    xray_body_parts: List[str] = Field(default_factory=list)


def admit_patient(form: AdmissionForm, clock: Clock, ids: IdGenerator) -> Patient:
    """
    Build a new active Patient from an admission form.

    end_date = start_date + duration_days - 1 (a duration below 1 counts as 1 day).
    X-ray patients start with a fresh "ordered" XrayOrder.
    """
    name = (form.name or "").strip()
    if not name:
        raise ValidationError("Patient name is required")

    today = clock.today().isoformat()
    start = to_date_key(form.start_date) if form.start_date else today
    end = end_date_for(start, form.duration_days)

    xray_order = None
    if form.service_type == "x-ray":
        xray_order = new_order(clock, issue=form.xray_issue, body_parts=form.xray_body_parts)

    try:
        patient = Patient(
            id=ids.new_id(),
            name=name,
            age=form.age,
            phone=(form.phone or "").strip(),
            address=(form.address or "").strip(),
            condition=(form.condition or "").strip(),
            service_type=form.service_type,
            registration_date=today,
            start_date=start,
            end_date=end,
            status="active",
            scheduled_weekdays=list(form.scheduled_weekdays),
            daily_plans=[],
            xray_order=xray_order,
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid patient: {e.errors()[0].get('msg')}")

    logger.info(
        "patients.admitted patient_id=%s service=%s start=%s end=%s",
        patient.id,
        patient.service_type,
        patient.start_date,
        patient.end_date,
    )
    return patient


def set_patient_status(patient: Patient, status: PatientStatusLiteral) -> Patient:
    updated = patient.model_copy(deep=True)
    try:
        updated.status = status
    except PydanticValidationError:
        raise ValidationError(f"Unknown patient status: {status!r}")
    return updated


def set_schedule(patient: Patient, weekdays: List[str]) -> Patient:
    updated = patient.model_copy(deep=True)
    try:
        updated.scheduled_weekdays = weekdays
    except PydanticValidationError:
        raise ValidationError(f"Unknown weekday in schedule: {weekdays!r}")
    return updated
