from __future__ import annotations

import logging
from threading import Lock as ThreadLock
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from clinicflow.adherence import progress
from clinicflow.config import CLINIC_NAME, CLINIC_SHORT_NAME, CLINICIAN_NAME, HOSPITAL_THERAPIES, XRAY_PROJECTIONS
from clinicflow.errors import (
    ClinicFlowError,
    InsufficientFilmError,
    OrderLockedError,
    PatientNotFoundError,
    PersistenceError,
    SuggestionServiceError,
    ValidationError,
)
from clinicflow.patient_store import JsonPatientStore
from clinicflow.patients import AdmissionForm
from clinicflow.services import ClinicService
from clinicflow.usage_log import usage_logger

logger = logging.getLogger("clinicflow.api")

router = APIRouter()

_SERVICE: Optional[ClinicService] = None
_SERVICE_LOCK = ThreadLock()


def get_service() -> ClinicService:
    global _SERVICE
    with _SERVICE_LOCK:
        if _SERVICE is None:
            _SERVICE = ClinicService(JsonPatientStore()).load()
        return _SERVICE


def set_service(service: Optional[ClinicService]) -> None:
    global _SERVICE
    with _SERVICE_LOCK:
        _SERVICE = service


def _http_error(e: ClinicFlowError) -> HTTPException:
    if isinstance(e, PatientNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientFilmError):
        return HTTPException(status_code=409, detail=e.to_dict())
    if isinstance(e, OrderLockedError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SuggestionServiceError):
        return HTTPException(status_code=502, detail=f"AI service failed: {e}")
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _patient_out(patient) -> Dict[str, Any]:
    out = patient.model_dump(mode="json")
    out["progress"] = progress(patient)
    return out


# =========================
# Payloads
# =========================

class StatusPayload(BaseModel):
    status: str


class SchedulePayload(BaseModel):
    scheduled_weekdays: List[str] = Field(default_factory=list)


class SessionPayload(BaseModel):
    name: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None


class SessionUpdatePayload(BaseModel):
    name: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class TogglePayload(BaseModel):
    target: str


class XrayEditPayload(BaseModel):
    issue: Optional[str] = None
    body_parts: Optional[List[str]] = None
    films_used_count: Optional[int] = None


class XrayCapturePayload(BaseModel):
    image_ref: Optional[str] = None


class XrayReportPayload(BaseModel):
    report: Optional[str] = None


class XrayAiReportPayload(BaseModel):
    language: str = "en"


class RestockPayload(BaseModel):
    amount: int


# =========================
# Health check
# =========================

@router.get("/ping")
def ping():
    return {"message": f"{CLINIC_SHORT_NAME} scheduler is alive"}


@router.get("/settings")
def get_settings():
    svc = get_service()
    return {
        "clinic_name": CLINIC_NAME,
        "clinic_short_name": CLINIC_SHORT_NAME,
        "clinician_name": CLINICIAN_NAME,
        "therapies": list(HOSPITAL_THERAPIES),
        "xray_projections": list(XRAY_PROJECTIONS),
        "film": svc.ledger.to_dict(),
    }


# =========================
# Patients
# =========================

@router.get("/patients")
def list_patients(
    tab: str = "active",
    service: str = "all",
    search: str = "",
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
):
    svc = get_service()
    return svc.dashboard(tab=tab, service=service, search=search, from_date=from_date, to_date=to_date)


@router.post("/patients")
def admit_patient(payload: AdmissionForm):
    svc = get_service()
    try:
        patient = svc.admit(payload)
    except ClinicFlowError as e:
        usage_logger.log_event("patient_created", status=400, meta={"error": str(e)})
        raise _http_error(e)
    usage_logger.log_event("patient_created", status=200, meta={"service": patient.service_type})
    logger.info(f"Patient admitted (id={patient.id}, service={patient.service_type})")
    return _patient_out(patient)


@router.get("/patients/export")
def export_patients():
    return {"rows": get_service().export_rows()}


@router.get("/patients/{patient_id}")
def get_patient(patient_id: str):
    try:
        return _patient_out(get_service().get_patient(patient_id))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.delete("/patients/{patient_id}")
def delete_patient(patient_id: str):
    try:
        get_service().delete_patient(patient_id)
    except ClinicFlowError as e:
        raise _http_error(e)
    return {"ok": True}


@router.post("/patients/{patient_id}/status")
def set_patient_status(patient_id: str, payload: StatusPayload):
    try:
        return _patient_out(get_service().set_status(patient_id, payload.status))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/schedule")
def set_patient_schedule(patient_id: str, payload: SchedulePayload):
    try:
        return _patient_out(get_service().set_schedule(patient_id, payload.scheduled_weekdays))
    except ClinicFlowError as e:
        raise _http_error(e)


# =========================
# Planner
# =========================

@router.get("/patients/{patient_id}/calendar")
def get_calendar(patient_id: str):
    svc = get_service()
    try:
        patient = svc.get_patient(patient_id)
        dates = svc.calendar(patient_id)
    except ClinicFlowError as e:
        raise _http_error(e)
    plans = {p.date: p.model_dump(mode="json") for p in patient.daily_plans}
    return {
        "dates": dates,
        "plans": plans,
        "progress": svc.progress(patient_id),
    }


@router.post("/patients/{patient_id}/plans/{date_key}/sessions")
def add_session(patient_id: str, date_key: str, payload: SessionPayload):
    fields = payload.model_dump(exclude_none=True)
    try:
        return _patient_out(get_service().add_session(patient_id, date_key, **fields))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.patch("/patients/{patient_id}/plans/{date_key}/sessions/{session_id}")
def update_session(patient_id: str, date_key: str, session_id: str, payload: SessionUpdatePayload):
    updates = payload.model_dump(exclude_none=True)
    try:
        return _patient_out(get_service().update_session(patient_id, date_key, session_id, updates))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.delete("/patients/{patient_id}/plans/{date_key}/sessions/{session_id}")
def delete_session(patient_id: str, date_key: str, session_id: str):
    try:
        return _patient_out(get_service().delete_session(patient_id, date_key, session_id))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/plans/{date_key}/sessions/{session_id}/toggle")
def toggle_session(patient_id: str, date_key: str, session_id: str, payload: TogglePayload):
    try:
        return _patient_out(get_service().toggle_session(patient_id, date_key, session_id, payload.target))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/plans/{date_key}/copy_previous")
def copy_previous_day(patient_id: str, date_key: str):
    try:
        return _patient_out(get_service().copy_previous_day(patient_id, date_key))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/suggest")
def apply_suggestions(patient_id: str):
    svc = get_service()
    try:
        result = svc.apply_suggestions(patient_id)
    except ClinicFlowError as e:
        usage_logger.log_event("suggest", status=500, meta={"error": str(e)})
        raise _http_error(e)
    status = 200 if result.error is None else 502
    usage_logger.log_event("suggest", status=status, meta={"added": result.added})
    return {"result": result.summary(), "patient": _patient_out(result.patient)}


# =========================
# Radiology
# =========================

@router.patch("/patients/{patient_id}/xray")
def edit_xray(patient_id: str, payload: XrayEditPayload):
    try:
        patient = get_service().edit_xray(
            patient_id,
            issue=payload.issue,
            body_parts=payload.body_parts,
            films_used_count=payload.films_used_count,
        )
    except ClinicFlowError as e:
        raise _http_error(e)
    return _patient_out(patient)


@router.post("/patients/{patient_id}/xray/capture")
def capture_xray(patient_id: str, payload: XrayCapturePayload):
    svc = get_service()
    try:
        patient = svc.capture_xray(patient_id, payload.image_ref)
    except ClinicFlowError as e:
        err = _http_error(e)
        usage_logger.log_event("capture", status=err.status_code, meta={"error": str(e)})
        raise err
    usage_logger.log_event("capture", status=200, meta={"films_remaining": svc.ledger.film_count})
    return _patient_out(patient)


@router.post("/patients/{patient_id}/xray/status")
def set_xray_status(patient_id: str, payload: StatusPayload):
    try:
        return _patient_out(get_service().set_xray_status(patient_id, payload.status))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/xray/report")
def report_xray(patient_id: str, payload: XrayReportPayload):
    try:
        return _patient_out(get_service().report_xray(patient_id, payload.report))
    except ClinicFlowError as e:
        raise _http_error(e)


@router.post("/patients/{patient_id}/xray/ai_report")
def ai_report_xray(patient_id: str, payload: XrayAiReportPayload):
    try:
        patient = get_service().generate_xray_report(patient_id, payload.language)
    except ClinicFlowError as e:
        err = _http_error(e)
        usage_logger.log_event("xray_report", status=err.status_code, meta={"error": str(e)})
        raise err
    usage_logger.log_event("xray_report", status=200, meta={"language": payload.language})
    return _patient_out(patient)


# =========================
# Film stock
# =========================

@router.get("/film")
def get_film():
    return get_service().ledger.to_dict()


@router.post("/film/restock")
def restock_film(payload: RestockPayload):
    try:
        ledger = get_service().restock(payload.amount)
    except ClinicFlowError as e:
        raise _http_error(e)
    usage_logger.log_event("restock", status=200, meta={"amount": payload.amount, "film_count": ledger.film_count})
    return ledger.to_dict()


# =========================
# Analytics
# =========================

@router.get("/analytics/pain_patterns")
def pain_patterns():
    return {"categories": get_service().pain_patterns()}


@router.get("/usage/today")
def usage_today():
    return usage_logger.summarize_day()
