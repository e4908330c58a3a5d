"""Completed-quantity updates reported by floor supervisors."""

from __future__ import annotations

from knitflow.production.changes import DefectChange, QuantityChange
from knitflow.production.errors import QualityExceedsCapacity, QuantityExceedsReceived
from knitflow.production.floors import ProductionFloor
from knitflow.production.ledger import ProductionArticle, coerce_quantity


def resolve_completed_total(current: int, value: int) -> int:
    """Interpret ``value`` against the floor's ``current`` completed count.

    Supervisors send either the units finished since their last report or the
    running total. A value below the current total can only be an increment;
    anything else is taken as the new total.
    """

    if value < current:
        return current + value
    return value


def apply_completed_quantity(article: ProductionArticle, floor, value) -> QuantityChange:
    floor = article.resolve_floor(floor)
    value = coerce_quantity(value, field_name="Completed quantity", floor=floor)
    ledger = article.floors[floor]

    previous = ledger.completed
    new = resolve_completed_total(previous, value)
    first = article.is_first_floor(floor)
    if not first and new > ledger.received:
        raise QuantityExceedsReceived(
            f"Completed quantity ({new}) cannot exceed received quantity "
            f"({ledger.received}) on {floor}.",
            floor=floor,
            expected=ledger.received,
            actual=new,
        )

    ledger.completed = new
    ledger.recompute_remaining()
    return QuantityChange(
        floor=floor,
        previous=previous,
        new=new,
        received=ledger.received,
        remaining=ledger.remaining,
        overproduction=first and new > ledger.received,
    )


def apply_knitting_defects(article: ProductionArticle, m4_quantity) -> DefectChange:
    """Replace the Knitting defect counter with ``m4_quantity``."""

    floor = ProductionFloor.KNITTING
    value = coerce_quantity(m4_quantity, field_name="M4 quantity", floor=floor)
    ledger = article.floors[floor]
    if value > ledger.completed:
        raise QualityExceedsCapacity(
            f"Knitting defects ({value}) cannot exceed completed quantity ({ledger.completed}).",
            floor=floor,
            expected=ledger.completed,
            actual=value,
        )
    previous = ledger.m4_quantity
    ledger.m4_quantity = value
    return DefectChange(floor=floor, previous=previous, new=value)
