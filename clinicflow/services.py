"""
ClinicService: the in-memory snapshot of patients + film ledger, and the only place
that talks to persistence and the AI collaborators.

Every mutation is read-modify-write on one patient under a single lock, then published
as a whole. If a save is not confirmed the snapshot is rolled back to the last good
value and PersistenceError is raised; the caller retries with a fresh read.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from clinicflow import adherence, dashboard, merge, plan_store, xray
from clinicflow.calendar_utils import expand_dates
from clinicflow.config import LOW_FILM_THRESHOLD, MAX_CALENDAR_DAYS
from clinicflow.errors import PatientNotFoundError, PersistenceError, SuggestionServiceError, ValidationError
from clinicflow.ledger import ConsumableLedger
from clinicflow.models import DaySuggestion, Patient, XrayOrder
from clinicflow.patient_store import PatientRepository
from clinicflow.patients import AdmissionForm, admit_patient, set_patient_status, set_schedule
from clinicflow.providers import Clock, IdGenerator, random_ids, system_clock

logger = logging.getLogger("clinicflow.services")

Suggester = Callable[[str, int, List[str]], List[DaySuggestion]]
Reporter = Callable[..., str]
PainAnalyzer = Callable[[List[str]], List[Dict[str, Any]]]


def _default_suggester(condition: str, weeks: int, weekdays: List[str]) -> List[DaySuggestion]:
    from clinicflow.suggest import suggest_sessions

    return suggest_sessions(condition, weeks, weekdays)


def _default_reporter(image: str, issue: str, language: str = "en") -> str:
    from clinicflow.suggest import generate_xray_report

    return generate_xray_report(image, issue, language)


def _default_pain_analyzer(conditions: List[str]) -> List[Dict[str, Any]]:
    from clinicflow.suggest import analyze_pain_patterns

    return analyze_pain_patterns(conditions)


class ClinicService:
    def __init__(
        self,
        repo: PatientRepository,
        clock: Clock = system_clock,
        ids: IdGenerator = random_ids,
        suggester: Optional[Suggester] = None,
        reporter: Optional[Reporter] = None,
        pain_analyzer: Optional[PainAnalyzer] = None,
        low_stock_threshold: int = LOW_FILM_THRESHOLD,
        max_calendar_days: int = MAX_CALENDAR_DAYS,
    ):
        self.repo = repo
        self.clock = clock
        self.ids = ids
        self.suggester = suggester or _default_suggester
        self.reporter = reporter or _default_reporter
        self.pain_analyzer = pain_analyzer or _default_pain_analyzer
        self.low_stock_threshold = low_stock_threshold
        self.max_calendar_days = max_calendar_days

        self.lock = threading.RLock()
        self.patients: List[Patient] = []
        self.ledger = ConsumableLedger(0, low_stock_threshold)

    # =========================
    # Snapshot
    # =========================

    def load(self) -> "ClinicService":
        with self.lock:
            self.patients = self.repo.load_patients()
            self.ledger = ConsumableLedger(self.repo.load_film_count(), self.low_stock_threshold)
        logger.info("service.loaded patients=%s films=%s", len(self.patients), self.ledger.film_count)
        return self

    def list_patients(self) -> List[Patient]:
        with self.lock:
            return list(self.patients)

    def get_patient(self, patient_id: str) -> Patient:
        with self.lock:
            for p in self.patients:
                if p.id == patient_id:
                    return p
        raise PatientNotFoundError(patient_id)

    def _publish_patients(self, new_list: List[Patient]) -> None:
        previous = self.patients
        self.patients = new_list
        if not self.repo.save_patients(new_list):
            self.patients = previous
            raise PersistenceError("Patient records could not be saved; changes were not applied.")

    def _commit(self, updated: Patient) -> Patient:
        new_list = [updated if p.id == updated.id else p for p in self.patients]
        self._publish_patients(new_list)
        return updated

    def _mutate(self, patient_id: str, fn: Callable[[Patient], Patient]) -> Patient:
        with self.lock:
            current = self.get_patient(patient_id)
            updated = fn(current)
            if updated is current:
                return current
            return self._commit(updated)

    # =========================
    # Patients
    # =========================

    def admit(self, form: AdmissionForm) -> Patient:
        with self.lock:
            patient = admit_patient(form, self.clock, self.ids)
            self._publish_patients([patient] + self.patients)
        return patient

    def set_status(self, patient_id: str, status: str) -> Patient:
        return self._mutate(patient_id, lambda p: set_patient_status(p, status))

    def set_schedule(self, patient_id: str, weekdays: List[str]) -> Patient:
        return self._mutate(patient_id, lambda p: set_schedule(p, weekdays))

    def delete_patient(self, patient_id: str) -> None:
        with self.lock:
            self.get_patient(patient_id)
            self._publish_patients([p for p in self.patients if p.id != patient_id])
        logger.info("service.patient_deleted patient_id=%s", patient_id)

    # =========================
    # Planner
    # =========================

    def calendar(self, patient_id: str) -> List[str]:
        p = self.get_patient(patient_id)
        return expand_dates(p.start_date, p.end_date, self.max_calendar_days)

    def add_session(self, patient_id: str, date_key: str, **fields: Any) -> Patient:
        return self._mutate(patient_id, lambda p: plan_store.add_session(p, date_key, self.ids, **fields))

    def update_session(self, patient_id: str, date_key: str, session_id: str, updates: Dict[str, Any]) -> Patient:
        return self._mutate(patient_id, lambda p: plan_store.update_session(p, date_key, session_id, updates))

    def delete_session(self, patient_id: str, date_key: str, session_id: str) -> Patient:
        return self._mutate(patient_id, lambda p: plan_store.delete_session(p, date_key, session_id))

    def toggle_session(self, patient_id: str, date_key: str, session_id: str, target: str) -> Patient:
        return self._mutate(patient_id, lambda p: plan_store.toggle_session(p, date_key, session_id, target))

    def copy_previous_day(self, patient_id: str, date_key: str) -> Patient:
        return self._mutate(
            patient_id,
            lambda p: merge.copy_previous_day(p, date_key, self.ids, self.max_calendar_days),
        )

    def apply_suggestions(self, patient_id: str) -> merge.MergeResult:
        """
        Ask the AI for a weekday plan and merge it in. The AI call happens outside
        the lock; the merge runs against a fresh read so concurrent edits are kept.
        A failed AI call is treated as "no suggestions".
        """
        patient = self.get_patient(patient_id)
        dates = expand_dates(patient.start_date, patient.end_date, self.max_calendar_days)
        weeks = merge.plan_weeks(dates)
        error: Optional[str] = None
        try:
            suggestions = self.suggester(patient.condition, weeks, list(patient.scheduled_weekdays))
        except SuggestionServiceError as e:
            logger.warning("service.suggest_failed patient_id=%s error=%s", patient_id, e)
            suggestions, error = [], str(e)

        with self.lock:
            current = self.get_patient(patient_id)
            result = merge.merge_suggestions(current, suggestions, self.ids, self.max_calendar_days)
            result.error = error
            if result.changed:
                self._commit(result.patient)
        return result

    def progress(self, patient_id: str) -> int:
        return adherence.progress(self.get_patient(patient_id))

    # =========================
    # Radiology
    # =========================

    def _order_of(self, patient: Patient) -> XrayOrder:
        if patient.xray_order is None:
            if patient.service_type != "x-ray":
                raise ValidationError("Patient has no x-ray order")
            return xray.new_order(self.clock)
        return patient.xray_order

    def _commit_xray(self, patient: Patient, order: XrayOrder, ledger: ConsumableLedger) -> Patient:
        """
        Film count and order are one logical write. The film count is saved first;
        if the patient save then fails the previous count is written back.
        """
        updated = patient.model_copy(deep=True)
        updated.xray_order = order
        previous_ledger = self.ledger
        if ledger.film_count != previous_ledger.film_count:
            if not self.repo.save_film_count(ledger.film_count):
                raise PersistenceError("Film stock could not be saved; x-ray update was not applied.")
            self.ledger = ledger
        try:
            self._commit(updated)
        except PersistenceError:
            if self.ledger is not previous_ledger:
                self.ledger = previous_ledger
                if not self.repo.save_film_count(previous_ledger.film_count):
                    logger.error(
                        "service.film_rollback_failed expected=%s", previous_ledger.film_count
                    )
            raise
        return updated

    def edit_xray(
        self,
        patient_id: str,
        issue: Optional[str] = None,
        body_parts: Optional[Iterable[str]] = None,
        films_used_count: Optional[int] = None,
    ) -> Patient:
        with self.lock:
            patient = self.get_patient(patient_id)
            order = xray.edit_order(self._order_of(patient), issue, body_parts, films_used_count)
            return self._commit_xray(patient, order, self.ledger)

    def capture_xray(self, patient_id: str, image_ref: Optional[str] = None) -> Patient:
        with self.lock:
            patient = self.get_patient(patient_id)
            order, ledger = xray.capture(self._order_of(patient), self.ledger, image_ref)
            return self._commit_xray(patient, order, ledger)

    def set_xray_status(self, patient_id: str, status: str) -> Patient:
        with self.lock:
            patient = self.get_patient(patient_id)
            order, ledger = xray.set_status(self._order_of(patient), status, self.ledger)
            return self._commit_xray(patient, order, ledger)

    def report_xray(self, patient_id: str, report_text: Optional[str]) -> Patient:
        with self.lock:
            patient = self.get_patient(patient_id)
            order, ledger = xray.report(self._order_of(patient), report_text, self.ledger)
            return self._commit_xray(patient, order, ledger)

    def generate_xray_report(self, patient_id: str, language: str = "en") -> Patient:
        """AI report for a captured image. A failed AI call leaves the order as it was."""
        patient = self.get_patient(patient_id)
        order = self._order_of(patient)
        if not order.image_ref:
            raise ValidationError("Capture an image before requesting a report")
        text = self.reporter(order.image_ref, order.issue or patient.condition, language)
        return self.report_xray(patient_id, text)

    # =========================
    # Film stock
    # =========================

    def restock(self, amount: int) -> ConsumableLedger:
        with self.lock:
            ledger = self.ledger.restock(amount)
            if not self.repo.save_film_count(ledger.film_count):
                raise PersistenceError("Film stock could not be saved; restock was not applied.")
            self.ledger = ledger
            return ledger

    # =========================
    # Dashboard
    # =========================

    def dashboard(self, **filters: Any) -> Dict[str, Any]:
        patients = self.list_patients()
        rows = dashboard.filter_patients(patients, **filters)
        return {
            "summary": dashboard.summary(patients, self.ledger),
            "patients": [
                {**p.model_dump(mode="json"), "progress": adherence.progress(p)} for p in rows
            ],
        }

    def export_rows(self) -> List[Dict[str, Any]]:
        return dashboard.export_rows(self.list_patients())

    def pain_patterns(self) -> List[Dict[str, Any]]:
        conditions = [p.condition for p in self.list_patients() if p.service_type == "physiotherapy"]
        if not conditions:
            return []
        return self.pain_analyzer(conditions)
