from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol
from uuid import uuid4


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class IdGenerator(Protocol):
    def new_id(self) -> str: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return datetime.now().date()


class RandomIdGenerator:
    """Opaque random tokens; never sequential so ids don't collide across dates."""

    def __init__(self, length: int = 12):
        self.length = length

    def new_id(self) -> str:
        return uuid4().hex[: self.length]


system_clock = SystemClock()
random_ids = RandomIdGenerator()
