"""
Radiology order state machine: ordered -> captured -> reported.

The only side effect is film deduction, which happens exactly once per order: on the
first transition away from "ordered" while film_consumed is False. A capture that
needs more film than the ledger holds is refused with InsufficientFilmError and
neither the order nor the ledger changes.

Functions return (order, ledger) pairs; callers persist both together.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from clinicflow.errors import InsufficientFilmError, OrderLockedError, ValidationError
from clinicflow.ledger import ConsumableLedger
from clinicflow.models import XrayOrder, XrayStatusLiteral, clean_body_parts
from clinicflow.providers import Clock

logger = logging.getLogger("clinicflow.xray")

STATUS_ORDER = ("ordered", "captured", "reported")


def default_film_count(body_parts: Iterable[str]) -> int:
    return max(1, len(list(body_parts)))


def transition_ok(current: str, target: str) -> bool:
    """Forward (or same-state) moves only."""
    if current not in STATUS_ORDER or target not in STATUS_ORDER:
        return False
    return STATUS_ORDER.index(target) >= STATUS_ORDER.index(current)


def new_order(clock: Clock, issue: str = "", body_parts: Iterable[str] = ()) -> XrayOrder:
    return XrayOrder(
        issue=issue or "",
        body_parts=list(body_parts),
        status="ordered",
        order_date=clock.today().isoformat(),
    )


def edit_order(
    order: XrayOrder,
    issue: Optional[str] = None,
    body_parts: Optional[Iterable[str]] = None,
    films_used_count: Optional[int] = None,
) -> XrayOrder:
    """
    Edit the order's clinical fields.

    Once film has been deducted, body_parts and films_used_count are frozen and a
    change raises OrderLockedError. While still "ordered", changing body_parts
    without an explicit films_used_count re-derives it as max(1, len(body_parts)).
    """
    updated = order.model_copy(deep=True)
    if issue is not None:
        updated.issue = issue

    if body_parts is not None:
        parts = clean_body_parts(body_parts)
        if parts != order.body_parts:
            if order.film_consumed:
                raise OrderLockedError("Projections cannot change after film has been used for this order.")
            updated.body_parts = parts
            if films_used_count is None and order.status == "ordered":
                updated.films_used_count = default_film_count(parts)

    if films_used_count is not None and films_used_count != order.films_used_count:
        if order.film_consumed:
            raise OrderLockedError("Film count cannot change after film has been used for this order.")
        if isinstance(films_used_count, bool) or not isinstance(films_used_count, int) or films_used_count < 0:
            raise ValidationError(f"films_used_count must be a non-negative integer, got {films_used_count!r}")
        updated.films_used_count = films_used_count

    return updated


def _apply_status(
    order: XrayOrder,
    target: XrayStatusLiteral,
    ledger: ConsumableLedger,
) -> Tuple[XrayOrder, ConsumableLedger]:
    if target not in STATUS_ORDER:
        raise ValidationError(f"Unknown x-ray status: {target!r}")

    # a zero-film order still flips film_consumed, so its count locks like any other
    needs_film = target != "ordered" and not order.film_consumed
    if needs_film and not ledger.has_at_least(order.films_used_count):
        logger.warning(
            "xray.capture_refused required=%s available=%s",
            order.films_used_count,
            ledger.film_count,
        )
        raise InsufficientFilmError(order.films_used_count, ledger.film_count)

    if not transition_ok(order.status, target):
        logger.warning("xray.backward_status from=%s to=%s", order.status, target)

    updated = order.model_copy(deep=True)
    updated.status = target
    if needs_film:
        ledger = ledger.consume(order.films_used_count)
        updated.film_consumed = True
        logger.info("xray.film_deducted films=%s remaining=%s", order.films_used_count, ledger.film_count)
    return updated, ledger


def set_status(
    order: XrayOrder,
    target: XrayStatusLiteral,
    ledger: ConsumableLedger,
) -> Tuple[XrayOrder, ConsumableLedger]:
    return _apply_status(order, target, ledger)


def capture(
    order: XrayOrder,
    ledger: ConsumableLedger,
    image_ref: Optional[str] = None,
) -> Tuple[XrayOrder, ConsumableLedger]:
    """
    Record the captured image. A repeat capture on an order whose film was
    already deducted only replaces the image; it never deducts again and never
    moves a reported order back.
    """
    target: XrayStatusLiteral = "captured" if order.status == "ordered" else order.status
    updated, ledger = _apply_status(order, target, ledger)
    if image_ref is not None:
        updated.image_ref = image_ref
    return updated, ledger


def report(
    order: XrayOrder,
    report_text: Optional[str],
    ledger: ConsumableLedger,
) -> Tuple[XrayOrder, ConsumableLedger]:
    """
    Attach the radiology report and mark the order reported. An empty report is
    allowed (staff may skip AI reporting).
    """
    if not (report_text or "").strip():
        logger.info("xray.reported_without_text")
    updated, ledger = _apply_status(order, "reported", ledger)
    if report_text is not None:
        updated.report = report_text
    return updated, ledger
