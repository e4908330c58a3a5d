"""Progress percentage, lifecycle status and the per-floor status report."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from knitflow.production.changes import ProgressChange, StatusChange
from knitflow.production.floors import ProductionFloor, is_inspection_floor
from knitflow.production.ledger import ArticleStatus, ProductionArticle


def _percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    # round half up on integers
    return (200 * part + whole) // (2 * whole)


def calculate_progress(article: ProductionArticle) -> int:
    """Share of the planned quantity produced up to the current floor.

    Inspection floors only count their M1 units.
    """

    order = article.floor_order
    if article.current_floor in order:
        reached = order[: order.index(article.current_floor) + 1]
    else:
        reached = order[:1]
    total = 0
    for floor in reached:
        ledger = article.floors[floor]
        total += ledger.m1_quantity if is_inspection_floor(floor) else ledger.completed
    return max(0, min(100, _percentage(total, article.planned_quantity)))


def recompute_progress(article: ProductionArticle) -> ProgressChange:
    previous = article.progress
    article.progress = calculate_progress(article)
    return ProgressChange(previous=previous, new=article.progress)


def _production_started(article: ProductionArticle) -> bool:
    return any(article.floors[floor].completed > 0 for floor in article.floor_order)


def _production_finished(article: ProductionArticle) -> bool:
    """The last floor finished everything it received and nothing is held upstream."""

    if article.current_floor != article.last_floor:
        return False
    ledger = article.floors[article.last_floor]
    if ledger.completed <= 0 or ledger.completed < ledger.received:
        return False
    return all(article.floors[floor].is_settled() for floor in article.floor_order[:-1])


def refresh_status(article: ProductionArticle, now: datetime | None = None) -> StatusChange | None:
    previous = article.status
    now = now or datetime.utcnow()

    if article.status == ArticleStatus.PENDING and _production_started(article):
        article.status = ArticleStatus.IN_PROGRESS
        if article.started_at is None:
            article.started_at = now
    if article.status == ArticleStatus.IN_PROGRESS and _production_finished(article):
        article.status = ArticleStatus.COMPLETED
        article.completed_at = now

    if article.status == previous:
        return None
    return StatusChange(previous=previous, new=article.status)


def floor_status(article: ProductionArticle, floor) -> dict[str, Any]:
    floor = article.resolve_floor(floor)
    ledger = article.floors[floor]
    status: dict[str, Any] = {
        "floor": floor,
        "is_current": floor == article.current_floor,
        "received": ledger.received,
        "completed": ledger.completed,
        "remaining": ledger.remaining,
        "transferred": ledger.transferred,
        "completion_rate": _percentage(ledger.completed, ledger.received),
    }
    if floor == ProductionFloor.KNITTING:
        status["m4_quantity"] = ledger.m4_quantity
        status["good_quantity"] = max(0, ledger.completed - ledger.m4_quantity)
    if is_inspection_floor(floor):
        status.update(
            {
                "m1_quantity": ledger.m1_quantity,
                "m2_quantity": ledger.m2_quantity,
                "m3_quantity": ledger.m3_quantity,
                "m4_quantity": ledger.m4_quantity,
                "m1_transferred": ledger.m1_transferred,
                "written_off": ledger.written_off,
                "repair_status": ledger.repair_status,
                "repair_remarks": ledger.repair_remarks,
                "quality_complete": ledger.quality_total == ledger.completed,
            }
        )
    return status


def floor_statuses(article: ProductionArticle) -> list[dict[str, Any]]:
    return [floor_status(article, floor) for floor in article.floor_order]
