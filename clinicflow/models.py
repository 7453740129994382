from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from clinicflow.calendar_utils import normalize_weekday, to_date_key


# =========================
# Shared strict base model (Pydantic v2)
# =========================

class StrictBaseModel(BaseModel):
    """
    Strict, assignment-validating base model (Pydantic v2).
    - extra fields are forbidden (schema discipline)
    - assignment is validated (an update_session with duration=0 fails here)
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


SessionStatusLiteral = Literal["pending", "completed", "missed"]
ServiceTypeLiteral = Literal["physiotherapy", "x-ray"]
PatientStatusLiteral = Literal["active", "completed", "archived"]
XrayStatusLiteral = Literal["ordered", "captured", "reported"]
WeekdayLiteral = Literal[
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def _canonical_date_key(value: str) -> str:
    # stored keys are always YYYY-MM-DD so plan lookups and string ordering agree
    return to_date_key(value)


DateKey = Annotated[str, AfterValidator(_canonical_date_key)]


def clean_body_parts(parts: Any) -> List[str]:
    """Strip labels, drop blanks and duplicates, keep first-seen order."""
    seen = set()
    out: List[str] = []
    for part in parts or []:
        label = (part or "").strip()
        if not label or label in seen:
            continue
        seen.add(label)
        out.append(label)
    return out


# =========================
# Physiotherapy
# =========================

class TherapySession(StrictBaseModel):
    id: str
    name: str
    duration: int = Field(..., gt=0)  # minutes
    notes: str = ""
    status: SessionStatusLiteral = "pending"


class DailyPlan(StrictBaseModel):
    id: str
    date: DateKey  # unique per patient
    sessions: List[TherapySession] = Field(default_factory=list)


# =========================
# Radiology
# =========================

class XrayOrder(StrictBaseModel):
    issue: str = ""
    body_parts: List[str] = Field(default_factory=list)
    status: XrayStatusLiteral = "ordered"
    order_date: DateKey
    image_ref: Optional[str] = None
    report: Optional[str] = None
    # absent means one film per requested projection, at least one
    films_used_count: Optional[int] = Field(None, ge=0, validate_default=True)
    film_consumed: bool = False

    @field_validator("body_parts")
    @classmethod
    def _dedupe_parts(cls, value: List[str]) -> List[str]:
        return clean_body_parts(value)

    @field_validator("films_used_count")
    @classmethod
    def _default_film_count(cls, value: Optional[int], info: ValidationInfo) -> int:
        if value is None:
            return max(1, len(info.data.get("body_parts") or []))
        return value


# =========================
# Patient (ROOT)
# =========================

class Patient(StrictBaseModel):
    id: str
    name: str
    age: Optional[int] = None
    phone: str = ""
    address: str = ""
    condition: str = ""

    service_type: ServiceTypeLiteral = "physiotherapy"
    registration_date: DateKey
    start_date: DateKey
    end_date: DateKey
    status: PatientStatusLiteral = "active"

    # Empty means every weekday is a clinic day.
    scheduled_weekdays: List[WeekdayLiteral] = Field(default_factory=list)
    daily_plans: List[DailyPlan] = Field(default_factory=list)

    xray_order: Optional[XrayOrder] = None

    @field_validator("scheduled_weekdays", mode="before")
    @classmethod
    def _normalize_weekdays(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple, set)):
            out: List[str] = []
            for item in value:
                day = normalize_weekday(item) if isinstance(item, str) else None
                if day is None:
                    # let Literal validation report the bad value
                    out.append(item)
                elif day not in out:
                    out.append(day)
            return out
        return value

    @field_validator("daily_plans")
    @classmethod
    def _one_plan_per_date(cls, value: List[DailyPlan]) -> List[DailyPlan]:
        seen = set()
        for plan in value:
            if plan.date in seen:
                raise ValueError(f"duplicate daily plan for {plan.date}")
            seen.add(plan.date)
        return value


# =========================
# AI suggestion shapes (boundary)
# =========================

class SuggestedSession(BaseModel):
    name: str
    duration: int = Field(..., gt=0)
    notes: str = ""


class DaySuggestion(BaseModel):
    """Sessions proposed for a weekday name (not a calendar date)."""
    day_name: WeekdayLiteral
    sessions: List[SuggestedSession] = Field(default_factory=list)
