from __future__ import annotations

from typing import Any, Dict, List, Optional

from clinicflow.adherence import progress
from clinicflow.ledger import ConsumableLedger
from clinicflow.models import Patient

ACTIVE_STATUSES = {"active"}
HISTORY_STATUSES = {"completed", "archived"}


def _matches(patient: Patient, term: str) -> bool:
    return (
        term in patient.name.lower()
        or term in patient.condition.lower()
        or term in patient.phone
        or term in (patient.address or "").lower()
        or term in patient.id.lower()
    )


def filter_patients(
    patients: List[Patient],
    tab: str = "active",
    service: str = "all",
    search: str = "",
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> List[Patient]:
    """
    Dashboard list: active or history tab, service filter, free-text search.
    The start-date window only applies to the history tab. Newest start date first.
    """
    statuses = HISTORY_STATUSES if tab == "history" else ACTIVE_STATUSES
    out = [p for p in patients if p.status in statuses]
    if service and service != "all":
        out = [p for p in out if p.service_type == service]
    term = (search or "").strip().lower()
    if term:
        out = [p for p in out if _matches(p, term)]
    if tab == "history":
        # date keys compare correctly as strings
        if from_date:
            out = [p for p in out if p.start_date >= from_date]
        if to_date:
            out = [p for p in out if p.start_date <= to_date]
    return sorted(out, key=lambda p: p.start_date, reverse=True)


def summary(patients: List[Patient], ledger: ConsumableLedger) -> Dict[str, Any]:
    active = [p for p in patients if p.status in ACTIVE_STATUSES]
    history = [p for p in patients if p.status in HISTORY_STATUSES]
    return {
        "physiotherapy_count": sum(1 for p in patients if p.service_type == "physiotherapy"),
        "xray_count": sum(1 for p in patients if p.service_type == "x-ray"),
        "active_count": len(active),
        "history_count": len(history),
        "film": ledger.to_dict(),
    }


def export_rows(patients: List[Patient]) -> List[Dict[str, Any]]:
    """Flat rows for the spreadsheet export."""
    rows: List[Dict[str, Any]] = []
    for p in patients:
        rows.append(
            {
                "Patient ID": p.id,
                "Name": p.name,
                "Age": p.age,
                "Phone": p.phone,
                "Address": p.address or "N/A",
                "Service": p.service_type.upper(),
                "Condition/History": p.condition,
                "Status": p.status,
                "Progress %": progress(p),
                "Start Date": p.start_date,
                "End Date": p.end_date,
                "Xray Status": (p.xray_order.status if p.xray_order else None) if p.service_type == "x-ray" else "N/A",
            }
        )
    return rows
