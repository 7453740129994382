import json
from types import SimpleNamespace

import pytest

from clinicflow.errors import SuggestionServiceError, ValidationError
from clinicflow.suggest import analyze_pain_patterns, generate_xray_report, plan_json_schema, suggest_sessions
from clinicflow.suggest import client
from clinicflow.suggest.generator import parse_plan


PLAN_JSON = json.dumps(
    {
        "days": [
            {
                "day_name": "Monday",
                "sessions": [{"name": "Laser Therapy", "duration": 10, "notes": "lumbar"}],
            },
            {
                "day_name": "Thursday",
                "sessions": [{"name": "IFT Therapy", "duration": 15, "notes": ""}],
            },
        ]
    }
)


class DummyCall:
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.payloads = []

    def __call__(self, payload, stage):
        self.payloads.append((dict(payload), stage))
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def test_parse_plan_valid():
    days = parse_plan(PLAN_JSON)
    assert [d.day_name for d in days] == ["Monday", "Thursday"]
    assert days[0].sessions[0].duration == 10


def test_parse_plan_malformed_is_empty():
    assert parse_plan("") == []
    assert parse_plan("{oops") == []
    assert parse_plan('"just a string"') == []
    assert parse_plan(json.dumps({"days": "nope"})) == []


def test_parse_plan_lenient_shapes():
    raw = json.dumps([{"dayName": "tue", "sessions": [{"name": "Laser Therapy", "duration": "8"}]}])
    days = parse_plan(raw)
    assert days[0].day_name == "Tuesday"
    assert days[0].sessions[0].duration == 8


def test_suggest_sessions_uses_schema_and_weekdays(monkeypatch):
    dummy = DummyCall([PLAN_JSON])
    monkeypatch.setattr(client, "call_response", dummy)

    days = suggest_sessions("Low back pain", weeks=2, scheduled_weekdays=["mon", "thu"])

    assert len(days) == 2
    payload, stage = dummy.payloads[0]
    assert stage == "plan"
    assert payload["text"]["format"]["strict"] is True
    assert "Monday, Thursday" in payload["input"][1]["content"]


def test_suggest_sessions_falls_back(monkeypatch):
    dummy = DummyCall([RuntimeError("rate limited"), PLAN_JSON])
    monkeypatch.setattr(client, "call_response", dummy)

    days = suggest_sessions("Neck pain")

    assert len(days) == 2
    assert [stage for _, stage in dummy.payloads] == ["plan", "plan_fallback"]
    assert dummy.payloads[0][0]["model"] != dummy.payloads[1][0]["model"]


def test_suggest_sessions_raises_when_both_fail(monkeypatch):
    monkeypatch.setattr(client, "call_response", DummyCall([RuntimeError("a"), RuntimeError("b")]))
    with pytest.raises(SuggestionServiceError):
        suggest_sessions("Neck pain")


def test_suggest_sessions_empty_condition_skips_call(monkeypatch):
    dummy = DummyCall([])
    monkeypatch.setattr(client, "call_response", dummy)
    assert suggest_sessions("  ") == []
    assert dummy.payloads == []


def test_call_response_retries_without_temperature(monkeypatch):
    calls = []

    def fake_create(payload):
        calls.append(dict(payload))
        if "temperature" in payload:
            raise RuntimeError("Unsupported parameter: 'temperature'")
        return SimpleNamespace(output_text="ok", usage=SimpleNamespace(input_tokens=3, output_tokens=1))

    monkeypatch.setattr(client, "responses_create", fake_create)
    assert client.call_response({"model": "m", "temperature": 0.2}, "plan") == "ok"
    assert len(calls) == 2
    assert "temperature" not in calls[1]


def test_plan_schema_restricts_therapies():
    schema = plan_json_schema()
    session_props = schema["properties"]["days"]["items"]["properties"]["sessions"]["items"]["properties"]
    assert "Laser Therapy" in session_props["name"]["enum"]
    assert "TENS Therapy" not in session_props["name"]["enum"]


def test_pain_patterns(monkeypatch):
    out = {"categories": [{"subject": "Mechanical", "count": 2, "full_mark": 2}]}
    monkeypatch.setattr(client, "call_response", DummyCall([json.dumps(out)]))
    assert analyze_pain_patterns(["Back pain", "Neck pain"]) == out["categories"]


def test_pain_patterns_empty_and_failures(monkeypatch):
    dummy = DummyCall([RuntimeError("down"), "not json"])
    monkeypatch.setattr(client, "call_response", dummy)
    assert analyze_pain_patterns([]) == []
    assert analyze_pain_patterns(["", "  "]) == []
    assert dummy.payloads == []
    assert analyze_pain_patterns(["Sciatica"]) == []
    assert analyze_pain_patterns(["Sciatica"]) == []


def test_xray_report(monkeypatch):
    dummy = DummyCall(["  Impression: normal study.  "])
    monkeypatch.setattr(client, "call_response", dummy)

    text = generate_xray_report("AAAA", "Wrist pain", language="en", mime_type="image/png")

    assert text == "Impression: normal study."
    content = dummy.payloads[0][0]["input"][1]["content"]
    assert content[1]["image_url"] == "data:image/png;base64,AAAA"


def test_xray_report_errors(monkeypatch):
    monkeypatch.setattr(client, "call_response", DummyCall([RuntimeError("boom"), "   "]))
    with pytest.raises(ValidationError):
        generate_xray_report("", "Wrist pain")
    with pytest.raises(ValidationError):
        generate_xray_report("AAAA", "Wrist pain", language="fr")
    with pytest.raises(SuggestionServiceError):
        generate_xray_report("AAAA", "Wrist pain")
    with pytest.raises(SuggestionServiceError):
        generate_xray_report("AAAA", "Wrist pain")


def test_response_helpers_read_sdk_attributes():
    resp = SimpleNamespace(output_text="hello", usage=SimpleNamespace(input_tokens=7, output_tokens=2))
    assert client.extract_output_text(resp) == "hello"
    assert client.usage_tokens(resp) == (7, 2)
    bare = SimpleNamespace(output_text=None)
    assert client.extract_output_text(bare) == ""
    assert client.usage_tokens(bare) == (None, None)
