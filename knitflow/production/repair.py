"""Detect and clamp ledger invariant violations before an article is saved.

The repair never raises. Each clamp is returned as a :class:`Correction` and
logged, at WARNING by default, so that inconsistent input from callers stays
visible.
"""

from __future__ import annotations

import logging

from knitflow.production.changes import Correction
from knitflow.production.floors import ProductionFloor, forwards_good_only, is_inspection_floor
from knitflow.production.ledger import (
    QUALITY_FIELDS,
    QUANTITY_FIELDS,
    FloorLedger,
    ProductionArticle,
)


def scale_to_fit(values: list[int], limit: int) -> list[int]:
    """Scale ``values`` down proportionally so they sum to exactly ``limit``.

    Uses largest-remainder rounding; ties go to the earlier bucket.
    """

    total = sum(values)
    if total <= limit:
        return list(values)
    if limit <= 0:
        return [0 for _ in values]
    scaled = [value * limit // total for value in values]
    remainders = [value * limit % total for value in values]
    leftover = limit - sum(scaled)
    ranked = sorted(range(len(values)), key=lambda index: (-remainders[index], index))
    for index in ranked[:leftover]:
        scaled[index] += 1
    return scaled


class _Repair:
    def __init__(self, article: ProductionArticle, logger: logging.Logger, level: int) -> None:
        self.article = article
        self.logger = logger
        self.level = level
        self.corrections: list[Correction] = []

    def set(self, floor: str | None, ledger, field: str, value, reason: str) -> None:
        previous = getattr(ledger, field)
        if previous == value:
            return
        setattr(ledger, field, value)
        correction = Correction(floor=floor, field=field, previous=previous, new=value, reason=reason)
        self.corrections.append(correction)
        self.logger.log(
            self.level,
            "Ledger repair on article %s: %s",
            self.article.article_number,
            correction.describe(),
        )

    def run(self) -> list[Correction]:
        article = self.article
        order = article.floor_order

        if article.current_floor not in order:
            self.set(
                None,
                article,
                "current_floor",
                article.first_floor,
                "current floor is not part of the route",
            )

        for floor in ProductionFloor.ALL_FLOORS:
            if floor not in order:
                self.clear_off_route(floor)

        for index, floor in enumerate(order):
            previous = order[index - 1] if index > 0 else None
            self.repair_floor(floor, previous)
        return self.corrections

    def clear_off_route(self, floor: str) -> None:
        ledger = self.article.floors[floor]
        for name in QUANTITY_FIELDS:
            self.set(floor, ledger, name, 0, "floor is not part of the route")

    def repair_floor(self, floor: str, previous: str | None) -> None:
        article = self.article
        ledger: FloorLedger = article.floors[floor]

        for name in QUANTITY_FIELDS:
            if getattr(ledger, name) < 0:
                self.set(floor, ledger, name, 0, "negative quantity")

        if previous is not None:
            upstream = article.floors[previous]
            if article.is_first_floor(previous):
                bound, source = upstream.completed, f"{previous} completed"
            else:
                bound, source = upstream.transferred, f"{previous} transferred"
            if ledger.received > bound:
                self.set(floor, ledger, "received", bound, f"received exceeds {source}")
            if ledger.completed > ledger.received:
                self.set(floor, ledger, "completed", ledger.received, "completed exceeds received")

        if floor == ProductionFloor.KNITTING and ledger.m4_quantity > ledger.completed:
            self.set(floor, ledger, "m4_quantity", ledger.completed, "defects exceed completed")

        if is_inspection_floor(floor):
            current = [getattr(ledger, name) for name in QUALITY_FIELDS]
            for name, value in zip(QUALITY_FIELDS, scale_to_fit(current, ledger.received)):
                self.set(floor, ledger, name, value, "quality total exceeds received")
        good_only = forwards_good_only(floor)
        if good_only and ledger.transferred > ledger.m1_quantity:
            self.set(floor, ledger, "transferred", ledger.m1_quantity, "transferred exceeds M1")

        if ledger.transferred > ledger.completed:
            self.set(floor, ledger, "transferred", ledger.completed, "transferred exceeds completed")

        self.set(
            floor,
            ledger,
            "m1_transferred",
            ledger.transferred if good_only else 0,
            "M1 transferred out of step",
        )
        limit = 0
        if is_inspection_floor(floor):
            limit = max(0, min(ledger.defect_total, ledger.completed - ledger.transferred))
        if ledger.written_off > limit:
            self.set(floor, ledger, "written_off", limit, "written off exceeds open defects")

        self.set(
            floor,
            ledger,
            "remaining",
            max(0, ledger.received - ledger.completed),
            "remaining out of step",
        )


def repair_ledgers(
    article: ProductionArticle,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.WARNING,
) -> list[Correction]:
    """Clamp ``article`` in place and return the corrections made.

    Callers that only preview the repair pass a lower ``level`` so the log
    does not claim fixes that are never saved.
    """

    logger = logger or logging.getLogger(__name__)
    return _Repair(article, logger, level).run()
