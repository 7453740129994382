from datetime import date, datetime, timezone

import pytest

from clinicflow.services import ClinicService


class FakeClock:
    def __init__(self, today: date = date(2024, 1, 1)):
        self._today = today

    def now(self):
        return datetime(self._today.year, self._today.month, self._today.day, 9, 0, tzinfo=timezone.utc)

    def today(self):
        return self._today


class SeqIds:
    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self.n = 0

    def new_id(self) -> str:
        self.n += 1
        return f"{self.prefix}{self.n}"


class MemoryRepo:
    def __init__(self, patients=None, film_count: int = 50):
        self.patients = list(patients or [])
        self.film_count = film_count
        self.fail_patients = False
        self.fail_film = False
        self.patient_saves = 0
        self.film_saves = []

    def load_patients(self):
        return list(self.patients)

    def save_patients(self, patients):
        if self.fail_patients:
            return False
        self.patient_saves += 1
        self.patients = list(patients)
        return True

    def load_film_count(self):
        return self.film_count

    def save_film_count(self, count):
        self.film_saves.append(count)
        if self.fail_film:
            return False
        self.film_count = count
        return True


class FakeSuggester:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.calls = []

    def __call__(self, condition, weeks, weekdays):
        self.calls.append((condition, weeks, list(weekdays)))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ids():
    return SeqIds()


@pytest.fixture
def repo():
    return MemoryRepo()


@pytest.fixture
def suggester():
    return FakeSuggester()


@pytest.fixture
def service(repo, clock, ids, suggester):
    return ClinicService(
        repo,
        clock=clock,
        ids=ids,
        suggester=suggester,
        reporter=lambda image, issue, language="en": f"Report ({language}) for {issue}",
        pain_analyzer=lambda conditions: [{"subject": "Mechanical", "count": len(conditions), "full_mark": len(conditions)}],
    ).load()
