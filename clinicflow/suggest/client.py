from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, Optional, Tuple

from openai import OpenAI

logger = logging.getLogger("clinicflow.suggest")

OPENAI_TIMEOUT_SEC = float(os.getenv("CLINICFLOW_OPENAI_TIMEOUT_SEC", "60"))

_client: Optional[OpenAI] = None
_client_lock = threading.Lock()


def get_client() -> OpenAI:
    """Created on first use so importing the package never needs OPENAI_API_KEY."""
    global _client
    with _client_lock:
        if _client is None:
            _client = OpenAI(api_key=os.getenv("OPENAI_API_KEY"), timeout=OPENAI_TIMEOUT_SEC)
        return _client


def responses_create(payload: Dict[str, Any]) -> Any:
    return get_client().responses.create(**payload)


def extract_output_text(resp: Any) -> str:
    return getattr(resp, "output_text", "") or ""


def usage_tokens(resp: Any) -> Tuple[Optional[int], Optional[int]]:
    usage = getattr(resp, "usage", None)
    if usage is None:
        return None, None
    return getattr(usage, "input_tokens", None), getattr(usage, "output_tokens", None)


def call_response(payload: Dict[str, Any], stage: str) -> str:
    """
    One Responses API call with a single retry that drops `temperature` when the
    model rejects it. Any other failure is logged and re-raised.
    """
    model = payload.get("model")
    try:
        resp = responses_create(payload)
    except Exception as e:
        if "temperature" not in str(e).lower() or "temperature" not in payload:
            logger.info("suggest.%s model=%s ok=False error=%s", stage, model, type(e).__name__)
            raise
        payload = {k: v for k, v in payload.items() if k != "temperature"}
        resp = responses_create(payload)
    text = extract_output_text(resp)
    inp, out = usage_tokens(resp)
    logger.info(
        "suggest.%s model=%s ok=True input_tokens=%s output_tokens=%s chars=%s",
        stage,
        model,
        inp,
        out,
        len(text or ""),
    )
    return text or ""
