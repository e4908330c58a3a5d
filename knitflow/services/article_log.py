"""Best-effort writer for the append-only article history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from knitflow.extensions import db
from knitflow.models import ArticleLog
from knitflow.production.ledger import ProductionArticle


@dataclass
class Actor:
    user_id: str = "system"
    floor_supervisor_id: str | None = None


@dataclass
class LogContext:
    machine_id: str | None = None
    shift_id: str | None = None
    batch_number: str | None = None


def _coerce_bool(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def audit_log_enabled() -> bool:
    return _coerce_bool(current_app.config.get("PRODUCTION_AUDIT_LOG_ENABLED", True))


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)[:255]


def collect_entries(changes: Iterable[Any]) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for change in changes:
        entries.extend(change.log_entries())
    return entries


def build_log_records(
    article: ProductionArticle,
    entries: Iterable[dict[str, Any]],
    actor: Actor,
    context: LogContext | None = None,
) -> list[ArticleLog]:
    context = context or LogContext()
    records = []
    for entry in entries:
        records.append(
            ArticleLog(
                article_id=article.id,
                order_id=article.order_id,
                action=entry["action"],
                quantity=entry.get("quantity") or 0,
                floor=entry.get("floor"),
                from_floor=entry.get("from_floor"),
                to_floor=entry.get("to_floor"),
                previous_value=_as_text(entry.get("previous_value")),
                new_value=_as_text(entry.get("new_value")),
                remarks=entry.get("remarks"),
                change_reason=entry.get("change_reason"),
                quality_status=entry.get("quality_status"),
                user_id=actor.user_id,
                floor_supervisor_id=actor.floor_supervisor_id,
                machine_id=context.machine_id,
                shift_id=context.shift_id,
                batch_number=context.batch_number,
                details=entry.get("details"),
            )
        )
    return records


def record_changes(
    article: ProductionArticle,
    changes: Iterable[Any],
    actor: Actor,
    context: LogContext | None = None,
) -> int:
    """Append one history row per log entry and return how many were written.

    Runs after the article itself has been committed. A failing write is
    rolled back and logged; it never undoes or blocks the article update.
    """

    if not audit_log_enabled():
        return 0
    entries = collect_entries(changes)
    if not entries:
        return 0
    try:
        records = build_log_records(article, entries, actor, context)
        db.session.add_all(records)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to record history for article %s", article.article_number
        )
        return 0
    return len(records)
