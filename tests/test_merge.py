from clinicflow import plan_store
from clinicflow.merge import coerce_suggestions, copy_previous_day, merge_suggestions, plan_weeks
from clinicflow.models import Patient


def _patient(**overrides):
    data = {
        "id": "p1",
        "name": "Ravi",
        "condition": "Low back pain",
        "registration_date": "2024-01-01",
        "start_date": "2024-01-01",
        "end_date": "2024-01-07",
    }
    data.update(overrides)
    return Patient(**data)


# =========================
# Copy previous day
# =========================

def test_copy_previous_first_day_is_no_op(ids):
    p = plan_store.add_session(_patient(), "2024-01-01", ids)
    assert copy_previous_day(p, "2024-01-01", ids) is p


def test_copy_previous_without_source_plan_is_no_op(ids):
    p = plan_store.add_session(_patient(), "2024-01-03", ids)
    assert copy_previous_day(p, "2024-01-03", ids) is p


def test_copy_previous_outside_range_is_no_op(ids):
    p = plan_store.add_session(_patient(), "2024-01-07", ids)
    assert copy_previous_day(p, "2024-01-08", ids) is p


def test_copy_previous_replaces_with_fresh_pending_clones(ids):
    p = _patient()
    p = plan_store.add_session(p, "2024-01-01", ids, name="Laser Therapy", duration=10, notes="lumbar")
    p = plan_store.add_session(p, "2024-01-01", ids, name="IFT Therapy", duration=20)
    src = p.daily_plans[0].sessions
    p = plan_store.toggle_session(p, "2024-01-01", src[0].id, "completed")
    p = plan_store.add_session(p, "2024-01-02", ids, name="TENS Therapy")

    out = copy_previous_day(p, "2024-01-02", ids)

    day2 = plan_store.find_plan(out, "2024-01-02").sessions
    assert [(s.name, s.duration, s.notes) for s in day2] == [
        ("Laser Therapy", 10, "lumbar"),
        ("IFT Therapy", 20, ""),
    ]
    assert all(s.status == "pending" for s in day2)
    source_ids = {s.id for s in plan_store.find_plan(out, "2024-01-01").sessions}
    assert not source_ids & {s.id for s in day2}
    # source day untouched
    assert plan_store.find_plan(out, "2024-01-01").sessions[0].status == "completed"


# =========================
# AI suggestion merge
# =========================

def test_merge_skips_days_that_already_have_a_suggested_therapy(ids):
    # 2024-01-01 is a Monday
    p = plan_store.add_session(_patient(), "2024-01-01", ids, name="Laser Therapy", duration=10)
    suggestions = [{"day_name": "Monday", "sessions": [{"name": "Laser Therapy", "duration": 10, "notes": ""}]}]

    result = merge_suggestions(p, suggestions, ids)

    assert result.added == 0
    assert result.skipped_dates == ["2024-01-01"]
    assert result.patient.daily_plans == p.daily_plans


def test_merge_appends_new_therapy_and_creates_missing_days(ids):
    p = plan_store.add_session(_patient(), "2024-01-01", ids, name="Laser Therapy", duration=10)
    suggestions = [
        {"day_name": "Monday", "sessions": [{"name": "IFT Therapy", "duration": 15, "notes": "paraspinal"}]},
        {"day_name": "Wednesday", "sessions": [{"name": "Ultrasound Therapy", "duration": 8, "notes": ""}]},
    ]

    result = merge_suggestions(p, suggestions, ids)

    monday = plan_store.find_plan(result.patient, "2024-01-01").sessions
    assert [s.name for s in monday] == ["Laser Therapy", "IFT Therapy"]
    wednesday = plan_store.find_plan(result.patient, "2024-01-03").sessions
    assert [(s.name, s.duration, s.status) for s in wednesday] == [("Ultrasound Therapy", 8, "pending")]
    assert result.appended_dates == ["2024-01-01"]
    assert result.created_dates == ["2024-01-03"]
    assert result.added == 2


def test_merge_is_idempotent_for_names_already_present(ids):
    suggestions = [{"day_name": "Tuesday", "sessions": [{"name": "IFT Therapy", "duration": 15, "notes": ""}]}]
    first = merge_suggestions(_patient(), suggestions, ids)
    second = merge_suggestions(first.patient, suggestions, ids)
    assert first.added == 1
    assert second.added == 0
    assert not second.changed


def test_merge_name_match_ignores_case(ids):
    p = plan_store.add_session(_patient(), "2024-01-01", ids, name="laser therapy")
    suggestions = [{"day_name": "Monday", "sessions": [{"name": "Laser Therapy", "duration": 10, "notes": ""}]}]
    assert merge_suggestions(p, suggestions, ids).added == 0


def test_merge_first_suggestion_per_weekday_wins(ids):
    suggestions = [
        {"day_name": "Monday", "sessions": [{"name": "Laser Therapy", "duration": 10, "notes": ""}]},
        {"day_name": "monday", "sessions": [{"name": "IFT Therapy", "duration": 15, "notes": ""}]},
    ]
    result = merge_suggestions(_patient(), suggestions, ids)
    monday = plan_store.find_plan(result.patient, "2024-01-01").sessions
    assert [s.name for s in monday] == ["Laser Therapy"]


def test_merge_empty_or_malformed_changes_nothing(ids):
    p = _patient()
    for raw in ([], None, "not a list", [{"day_name": "Someday", "sessions": []}], [{"dayName": "Monday"}]):
        result = merge_suggestions(p, raw, ids)
        assert result.patient is p
        assert result.added == 0


def test_coerce_accepts_camel_case_and_drops_bad_sessions():
    out = coerce_suggestions(
        [
            {
                "dayName": "fri",
                "sessions": [
                    {"name": "Laser Therapy", "durationMinutes": "12"},
                    {"name": "", "duration": 10},
                    {"name": "IFT Therapy", "duration": -5},
                ],
            }
        ]
    )
    assert len(out) == 1
    assert out[0].day_name == "Friday"
    assert [(s.name, s.duration) for s in out[0].sessions] == [("Laser Therapy", 12)]


def test_plan_weeks():
    assert plan_weeks([]) == 1
    assert plan_weeks(["d"] * 7) == 1
    assert plan_weeks(["d"] * 8) == 2
    assert plan_weeks(["d"] * 10) == 2
