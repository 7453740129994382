"""
Exceptions raised by the clinicflow core and service layer.

The HTTP layer (api.py) translates these into HTTPException responses.
Plan/session lookups that miss are not errors: they are no-ops.
"""

from __future__ import annotations

from typing import Any, Dict


class ClinicFlowError(Exception):
    """Base exception for all clinicflow errors."""


class ValidationError(ClinicFlowError, ValueError):
    """Rejected input. No state was changed."""


class InsufficientFilmError(ClinicFlowError):
    """
    Raised when an x-ray capture needs more film than the ledger holds.
    The order stays `ordered` and the ledger is untouched.
    """

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient film stock. Required: {required}, Available: {available}."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": "INSUFFICIENT_FILM",
            "message": str(self),
            "required": self.required,
            "available": self.available,
        }


class OrderLockedError(ClinicFlowError):
    """Film was already deducted for this order; projections and film count are frozen."""


class PatientNotFoundError(ClinicFlowError):
    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(f"Patient not found: {patient_id}")


class SuggestionServiceError(ClinicFlowError):
    """The AI service was unreachable or returned nothing usable."""


class PersistenceError(ClinicFlowError):
    """A save was not confirmed; in-memory state was rolled back to the last good value."""
