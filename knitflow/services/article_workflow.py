"""Production floor operations exposed to the rest of the application.

Every operation follows the same pipeline: load the article, apply the pure
ledger operations to a detached working copy, repair any invariant violations,
recompute progress and status, save the aggregate in one commit, and then
project the current floor onto the order and append history rows. Both of
those follow-up writes are best effort. A :class:`ProductionError` raised by
the ledger operations leaves the stored article untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from knitflow.extensions import db
from knitflow.models import ProductionOrder
from knitflow.production.changes import ArticleCreated, Correction, LedgerRepair, RemarksChange
from knitflow.production.errors import InvalidFloorForQuality, ProductionError
from knitflow.production.floors import ProductionFloor
from knitflow.production.ledger import LedgerViolation, ProductionArticle, find_violations
from knitflow.production.progress import recompute_progress, refresh_status
from knitflow.production.quality import (
    QualityUpdate,
    apply_quality_categories,
    confirm_final_quality as confirm_quality,
    shift_m2_items as shift_m2,
    write_off_defects as write_off,
)
from knitflow.production.quantities import apply_completed_quantity, apply_knitting_defects
from knitflow.production.repair import repair_ledgers
from knitflow.production.transfer import run_transfer_pass
from knitflow.services import article_log, article_store
from knitflow.services.article_log import Actor, LogContext


@dataclass
class ProgressUpdate:
    completed_quantity: int
    m4_quantity: int | None = None
    remarks: str | None = None
    machine_id: str | None = None
    shift_id: str | None = None


@dataclass
class TransferRequest:
    quantity: int | None = None
    remarks: str | None = None
    batch_number: str | None = None


@dataclass
class M2ShiftRequest:
    from_m2: int
    to_m1: int = 0
    to_m3: int = 0
    to_m4: int = 0
    remarks: str | None = None


@dataclass
class FinalQualityRequest:
    confirmed: bool = True
    remarks: str | None = None


@dataclass
class WriteOffRequest:
    remarks: str | None = None


@dataclass
class BulkProgressItem:
    article_id: int
    floor: str
    completed_quantity: int
    order_id: int | None = None
    m4_quantity: int | None = None
    remarks: str | None = None


@dataclass
class OperationResult:
    article: ProductionArticle
    changes: list[Any] = field(default_factory=list)
    corrections: list[Correction] = field(default_factory=list)
    log_entries_written: int = 0


@dataclass
class CorruptionReport:
    article_id: int
    article_number: str
    dry_run: bool
    current_floor: str
    violations: list[LedgerViolation] = field(default_factory=list)
    corrections: list[Correction] = field(default_factory=list)
    floor_quantities: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def repaired(self) -> bool:
        return bool(self.corrections) and not self.dry_run

    def to_dict(self) -> dict[str, Any]:
        return {
            "article_id": self.article_id,
            "article_number": self.article_number,
            "dry_run": self.dry_run,
            "repaired": self.repaired,
            "current_floor": self.current_floor,
            "violations": [
                {"floor": v.floor, "rule": v.rule, "message": v.message}
                for v in self.violations
            ],
            "corrections": [
                {
                    "floor": c.floor,
                    "field": c.field,
                    "previous": c.previous,
                    "new": c.new,
                    "reason": c.reason,
                }
                for c in self.corrections
            ],
            "floor_quantities": self.floor_quantities,
        }


def _default_actor(actor: Actor | None) -> Actor:
    if actor is not None:
        return actor
    return Actor(user_id=current_app.config.get("PRODUCTION_SYSTEM_ACTOR", "system"))


def _set_remarks(article: ProductionArticle, remarks: str | None) -> list[RemarksChange]:
    if not remarks:
        return []
    article.remarks = remarks
    return [RemarksChange(remarks=remarks)]


def _project_order_floor(article: ProductionArticle) -> None:
    """Mirror the article's current floor onto its order; failures are only logged."""

    if article.order_id is None:
        return
    try:
        order = db.session.get(ProductionOrder, article.order_id)
        if order is None:
            return
        order.current_floor = article.current_floor
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to update current floor of order %s", article.order_id
        )


def _finalize(article: ProductionArticle, changes: list[Any]) -> list[Correction]:
    """Repair the ledgers, then derive progress and status from the repaired state."""

    corrections = repair_ledgers(article, logger=current_app.logger)
    if corrections:
        changes.append(LedgerRepair(corrections))
    changes.append(recompute_progress(article))
    status_change = refresh_status(article)
    if status_change is not None:
        changes.append(status_change)
    return corrections


def _run(
    operation: str,
    article_id: int,
    order_id: int | None,
    mutate: Callable[[ProductionArticle], list[Any]],
    *,
    actor: Actor | None = None,
    context: LogContext | None = None,
) -> OperationResult:
    actor = _default_actor(actor)
    record, article = article_store.load_article(article_id, order_id)
    previous_floor = article.current_floor

    changes = list(mutate(article))
    corrections = _finalize(article, changes)

    article_store.save_article(record, article)
    if article.current_floor != previous_floor:
        _project_order_floor(article)
    written = article_log.record_changes(article, changes, actor, context)

    current_app.logger.info(
        "%s on article %s by %s: now on %s, %s%% complete",
        operation,
        article.article_number,
        actor.user_id,
        article.current_floor,
        article.progress,
    )
    return OperationResult(
        article=article,
        changes=changes,
        corrections=corrections,
        log_entries_written=written,
    )


def create_article(
    *,
    article_number: str,
    planned_quantity,
    linking_type: str,
    order_id: int | None = None,
    remarks: str | None = None,
    machine_id: str | None = None,
    actor: Actor | None = None,
) -> OperationResult:
    actor = _default_actor(actor)
    article = ProductionArticle.create(
        article_number=article_number,
        planned_quantity=planned_quantity,
        linking_type=linking_type,
        order_id=order_id,
        remarks=remarks,
        machine_id=machine_id,
    )
    changes: list[Any] = [
        ArticleCreated(
            floor=article.first_floor,
            planned_quantity=article.planned_quantity,
            linking_type=article.linking_type,
        )
    ]
    article_store.save_article(None, article)
    _project_order_floor(article)
    written = article_log.record_changes(
        article, changes, actor, LogContext(machine_id=machine_id)
    )
    current_app.logger.info(
        "Created article %s with %s planned units", article.article_number, article.planned_quantity
    )
    return OperationResult(article=article, changes=changes, log_entries_written=written)


def update_progress(
    floor,
    order_id: int | None,
    article_id: int,
    payload: ProgressUpdate,
    actor: Actor | None = None,
) -> OperationResult:
    """Record completed units on ``floor`` and forward whatever became transferable."""

    def mutate(article: ProductionArticle) -> list[Any]:
        resolved = article.resolve_floor(floor)
        changes: list[Any] = [
            apply_completed_quantity(article, resolved, payload.completed_quantity)
        ]
        if payload.m4_quantity is not None:
            if resolved != ProductionFloor.KNITTING:
                raise InvalidFloorForQuality(
                    f"A defect count can only be reported on Knitting, not {resolved}.",
                    floor=resolved,
                    expected=ProductionFloor.KNITTING,
                )
            changes.append(apply_knitting_defects(article, payload.m4_quantity))
        if payload.machine_id:
            article.machine_id = payload.machine_id
        changes.extend(_set_remarks(article, payload.remarks))
        changes.extend(run_transfer_pass(article, resolved))
        return changes

    return _run(
        "Progress update",
        article_id,
        order_id,
        mutate,
        actor=actor,
        context=LogContext(machine_id=payload.machine_id, shift_id=payload.shift_id),
    )


def transfer(
    floor,
    order_id: int | None,
    article_id: int,
    payload: TransferRequest | None = None,
    actor: Actor | None = None,
) -> OperationResult:
    payload = payload or TransferRequest()

    def mutate(article: ProductionArticle) -> list[Any]:
        changes: list[Any] = run_transfer_pass(
            article, floor, payload.quantity, strict=True
        )
        changes.extend(_set_remarks(article, payload.remarks))
        return changes

    return _run(
        "Transfer",
        article_id,
        order_id,
        mutate,
        actor=actor,
        context=LogContext(batch_number=payload.batch_number),
    )


def quality_inspection(
    floor,
    order_id: int | None,
    article_id: int,
    payload: QualityUpdate,
    actor: Actor | None = None,
) -> OperationResult:
    def mutate(article: ProductionArticle) -> list[Any]:
        changes: list[Any] = [apply_quality_categories(article, floor, payload)]
        changes.extend(run_transfer_pass(article, floor))
        return changes

    return _run("Quality inspection", article_id, order_id, mutate, actor=actor)


def shift_m2_items(
    floor,
    order_id: int | None,
    article_id: int,
    payload: M2ShiftRequest,
    actor: Actor | None = None,
) -> OperationResult:
    def mutate(article: ProductionArticle) -> list[Any]:
        changes: list[Any] = [
            shift_m2(
                article,
                floor,
                payload.from_m2,
                to_m1=payload.to_m1,
                to_m3=payload.to_m3,
                to_m4=payload.to_m4,
            )
        ]
        changes.extend(_set_remarks(article, payload.remarks))
        changes.extend(run_transfer_pass(article, floor))
        return changes

    return _run("M2 shift", article_id, order_id, mutate, actor=actor)


def confirm_final_quality(
    floor,
    order_id: int | None,
    article_id: int,
    payload: FinalQualityRequest | None = None,
    actor: Actor | None = None,
) -> OperationResult:
    payload = payload or FinalQualityRequest()

    def mutate(article: ProductionArticle) -> list[Any]:
        changes: list[Any] = [confirm_quality(article, floor, payload.confirmed)]
        changes.extend(_set_remarks(article, payload.remarks))
        return changes

    return _run("Final quality confirmation", article_id, order_id, mutate, actor=actor)


def write_off_defects(
    floor,
    order_id: int | None,
    article_id: int,
    payload: WriteOffRequest | None = None,
    actor: Actor | None = None,
) -> OperationResult:
    payload = payload or WriteOffRequest()

    def mutate(article: ProductionArticle) -> list[Any]:
        changes: list[Any] = [write_off(article, floor)]
        changes.extend(_set_remarks(article, payload.remarks))
        changes.extend(run_transfer_pass(article, floor))
        return changes

    return _run("Defect write-off", article_id, order_id, mutate, actor=actor)


def fix_data_corruption(
    article_id: int, dry_run: bool = False, actor: Actor | None = None
) -> CorruptionReport:
    """Repair the stored ledgers of one article and report what was wrong."""

    actor = _default_actor(actor)
    record, article = article_store.load_article(article_id)
    violations = find_violations(article)
    corrections = repair_ledgers(
        article,
        logger=current_app.logger,
        level=logging.DEBUG if dry_run else logging.WARNING,
    )

    if dry_run and corrections:
        current_app.logger.info(
            "Dry run found %s ledger fields to repair on article %s",
            len(corrections),
            article.article_number,
        )
    if corrections and not dry_run:
        previous_floor = record.current_floor
        changes: list[Any] = [LedgerRepair(corrections), recompute_progress(article)]
        status_change = refresh_status(article)
        if status_change is not None:
            changes.append(status_change)
        article_store.save_article(record, article)
        if article.current_floor != previous_floor:
            _project_order_floor(article)
        article_log.record_changes(article, changes, actor)
        current_app.logger.info(
            "Repaired %s ledger fields on article %s",
            len(corrections),
            article.article_number,
        )

    return CorruptionReport(
        article_id=article_id,
        article_number=article.article_number,
        dry_run=dry_run,
        current_floor=article.current_floor,
        violations=violations,
        corrections=corrections,
        floor_quantities=article.floor_quantities(),
    )


def bulk_update_progress(
    updates: Iterable[BulkProgressItem], actor: Actor | None = None
) -> dict[str, Any]:
    """Apply several progress updates; each succeeds or fails on its own."""

    total = 0
    updated = 0
    errors: list[dict[str, Any]] = []
    for item in updates:
        total += 1
        try:
            update_progress(
                item.floor,
                item.order_id,
                item.article_id,
                ProgressUpdate(
                    completed_quantity=item.completed_quantity,
                    m4_quantity=item.m4_quantity,
                    remarks=item.remarks,
                ),
                actor=actor,
            )
        except ProductionError as exc:
            errors.append({"article_id": item.article_id, **exc.to_dict()})
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(
                "Bulk progress update failed for article %s", item.article_id
            )
            errors.append(
                {
                    "article_id": item.article_id,
                    "kind": "database_error",
                    "category": "collaborator",
                    "message": str(exc),
                }
            )
            continue
        updated += 1
    return {"total": total, "updated": updated, "failed": len(errors), "errors": errors}
