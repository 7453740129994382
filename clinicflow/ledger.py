from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from clinicflow.config import LOW_FILM_THRESHOLD
from clinicflow.errors import ValidationError

logger = logging.getLogger("clinicflow.ledger")


@dataclass(frozen=True)
class ConsumableLedger:
    """
    X-ray film stock. Operations return a new ledger; the count never goes below 0.
    low_stock_threshold is an alerting knob, not a hard limit.
    """
    film_count: int
    low_stock_threshold: int = LOW_FILM_THRESHOLD

    def __post_init__(self) -> None:
        if self.film_count < 0:
            object.__setattr__(self, "film_count", 0)

    @property
    def is_low_stock(self) -> bool:
        return self.film_count <= self.low_stock_threshold

    def has_at_least(self, amount: int) -> bool:
        return self.film_count >= amount

    def restock(self, amount: int) -> "ConsumableLedger":
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"Restock amount must be a positive integer, got {amount!r}")
        logger.info("ledger.restock amount=%s before=%s after=%s", amount, self.film_count, self.film_count + amount)
        return replace(self, film_count=self.film_count + amount)

    def consume(self, amount: int) -> "ConsumableLedger":
        after = max(0, self.film_count - max(0, int(amount)))
        logger.info("ledger.consume amount=%s before=%s after=%s", amount, self.film_count, after)
        return replace(self, film_count=after)

    def to_dict(self) -> dict:
        return {
            "film_count": self.film_count,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
        }
