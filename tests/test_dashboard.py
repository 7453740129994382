from clinicflow import dashboard
from clinicflow.ledger import ConsumableLedger
from clinicflow.models import Patient, XrayOrder


def _patient(pid, name, start, status="active", service_type="physiotherapy", **extra):
    return Patient(
        id=pid,
        name=name,
        registration_date=start,
        start_date=start,
        end_date=start,
        status=status,
        service_type=service_type,
        **extra,
    )


PATIENTS = [
    _patient("a1", "Anil Patil", "2024-01-05", condition="Knee OA", phone="9822000001"),
    _patient("a2", "Bina Shah", "2024-01-09", condition="Neck pain", address="Kothrud"),
    _patient(
        "x1",
        "Chetan Rao",
        "2024-01-07",
        service_type="x-ray",
        condition="Fall",
        xray_order=XrayOrder(order_date="2024-01-07", body_parts=["Wrist"], status="captured"),
    ),
    _patient("h1", "Deepa Joshi", "2023-12-01", status="completed", condition="Sciatica"),
    _patient("h2", "Eknath More", "2023-11-15", status="archived", condition="Frozen shoulder"),
]


def test_active_tab_sorted_newest_first():
    out = dashboard.filter_patients(PATIENTS)
    assert [p.id for p in out] == ["a2", "x1", "a1"]


def test_service_filter():
    assert [p.id for p in dashboard.filter_patients(PATIENTS, service="x-ray")] == ["x1"]


def test_search_is_case_insensitive_across_fields():
    assert [p.id for p in dashboard.filter_patients(PATIENTS, search="KNEE")] == ["a1"]
    assert [p.id for p in dashboard.filter_patients(PATIENTS, search="kothrud")] == ["a2"]
    assert [p.id for p in dashboard.filter_patients(PATIENTS, search="98220")] == ["a1"]
    assert [p.id for p in dashboard.filter_patients(PATIENTS, search="X1")] == ["x1"]


def test_history_tab_with_date_window():
    assert [p.id for p in dashboard.filter_patients(PATIENTS, tab="history")] == ["h1", "h2"]
    out = dashboard.filter_patients(PATIENTS, tab="history", from_date="2023-11-20", to_date="2023-12-31")
    assert [p.id for p in out] == ["h1"]
    # window is ignored on the active tab
    assert len(dashboard.filter_patients(PATIENTS, from_date="2030-01-01")) == 3


def test_summary():
    out = dashboard.summary(PATIENTS, ConsumableLedger(4))
    assert out["physiotherapy_count"] == 4
    assert out["xray_count"] == 1
    assert out["active_count"] == 3
    assert out["history_count"] == 2
    assert out["film"]["is_low_stock"] is True


def test_export_rows():
    rows = {r["Patient ID"]: r for r in dashboard.export_rows(PATIENTS)}
    assert rows["x1"]["Service"] == "X-RAY"
    assert rows["x1"]["Xray Status"] == "captured"
    assert rows["x1"]["Progress %"] == 50
    assert rows["a1"]["Xray Status"] == "N/A"
    assert rows["a1"]["Address"] == "N/A"
