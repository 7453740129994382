from .generator import suggest_sessions
from .pain import analyze_pain_patterns
from .report import generate_xray_report
from .schema import PlanSuggestion, plan_json_schema

__all__ = [
    "suggest_sessions",
    "analyze_pain_patterns",
    "generate_xray_report",
    "PlanSuggestion",
    "plan_json_schema",
]
