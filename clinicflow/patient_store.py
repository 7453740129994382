from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from clinicflow.config import DEFAULT_FILM_COUNT
from clinicflow.models import Patient


logger = logging.getLogger("clinicflow.store")

DEFAULT_DATA_DIR = os.path.join(
    os.path.dirname(os.path.dirname(__file__)),
    "data",
)
ENV_DATA_DIR = "CLINICFLOW_DATA_DIR"

PATIENTS_FILENAME = "patients.json"
SETTINGS_FILENAME = "clinical_settings.json"

_LOCK = threading.Lock()


class PatientRepository(Protocol):
    def load_patients(self) -> List[Patient]: ...

    def save_patients(self, patients: List[Patient]) -> bool: ...

    def load_film_count(self) -> int: ...

    def save_film_count(self, count: int) -> bool: ...


def _data_dir() -> str:
    p = (os.getenv(ENV_DATA_DIR) or DEFAULT_DATA_DIR).strip()
    return p or DEFAULT_DATA_DIR


def _ensure_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def _safe_json_load(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except FileNotFoundError:
        return {}
    except Exception:
        logger.warning("store.load_failed path=%s", path, exc_info=True)
        return {}


def _safe_json_write(path: str, payload: Dict[str, Any]) -> None:
    _ensure_dir(path)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
    os.replace(tmp, path)


class JsonPatientStore:
    """
    Local JSON cache: one file for patients, one for clinical settings (film count).
    Writes go through a temp file + os.replace so a crash never leaves half a file.
    Save methods return False instead of raising; the caller decides what to roll back.
    """

    def __init__(self, data_dir: Optional[str] = None, default_film_count: int = DEFAULT_FILM_COUNT):
        self.data_dir = data_dir or _data_dir()
        self.default_film_count = default_film_count

    @property
    def patients_path(self) -> str:
        return os.path.join(self.data_dir, PATIENTS_FILENAME)

    @property
    def settings_path(self) -> str:
        return os.path.join(self.data_dir, SETTINGS_FILENAME)

    def load_patients(self) -> List[Patient]:
        with _LOCK:
            data = _safe_json_load(self.patients_path)
        raw = data.get("patients", [])
        if not isinstance(raw, list):
            return []
        out: List[Patient] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                out.append(Patient.model_validate(item))
            except PydanticValidationError as e:
                logger.warning("store.patient_skipped id=%s errors=%s", item.get("id"), len(e.errors()))
        return out

    def save_patients(self, patients: List[Patient]) -> bool:
        payload = {"patients": [p.model_dump(mode="json") for p in patients]}
        try:
            with _LOCK:
                _safe_json_write(self.patients_path, payload)
        except OSError:
            logger.exception("store.save_patients_failed path=%s", self.patients_path)
            return False
        return True

    def load_film_count(self) -> int:
        with _LOCK:
            data = _safe_json_load(self.settings_path)
        raw = data.get("film_count")
        try:
            count = int(raw)
        except (TypeError, ValueError):
            return self.default_film_count
        return max(0, count)

    def save_film_count(self, count: int) -> bool:
        try:
            with _LOCK:
                data = _safe_json_load(self.settings_path)
                data["film_count"] = int(count)
                _safe_json_write(self.settings_path, data)
        except OSError:
            logger.exception("store.save_film_count_failed path=%s", self.settings_path)
            return False
        return True
