"""Loading and saving production articles as whole aggregates."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from knitflow.extensions import db
from knitflow.models import Article
from knitflow.production.errors import ArticleNotFound
from knitflow.production.ledger import ProductionArticle, load_floor_quantities


def to_domain(record: Article) -> ProductionArticle:
    """Build a detached working copy of ``record`` for the ledger operations."""

    return ProductionArticle(
        id=record.id,
        order_id=record.order_id,
        article_number=record.article_number,
        planned_quantity=record.planned_quantity,
        linking_type=record.linking_type,
        current_floor=record.current_floor,
        status=record.status,
        progress=record.progress or 0,
        floors=load_floor_quantities(record.floor_quantities),
        final_quality_confirmed=bool(record.final_quality_confirmed),
        remarks=record.remarks,
        machine_id=record.machine_id,
        started_at=record.started_at,
        completed_at=record.completed_at,
    )


def apply_to_record(record: Article, article: ProductionArticle) -> Article:
    record.order_id = article.order_id
    record.article_number = article.article_number
    record.planned_quantity = article.planned_quantity
    record.linking_type = article.linking_type
    record.current_floor = article.current_floor
    record.status = article.status
    record.progress = article.progress
    record.floor_quantities = article.floor_quantities()
    record.final_quality_confirmed = article.final_quality_confirmed
    record.remarks = article.remarks
    record.machine_id = article.machine_id
    record.started_at = article.started_at
    record.completed_at = article.completed_at
    return record


def get_record(article_id: int, order_id: int | None = None) -> Article:
    record = db.session.get(Article, article_id)
    if record is None:
        raise ArticleNotFound(f"Article {article_id} not found.", actual=article_id)
    if order_id is not None and record.order_id != order_id:
        raise ArticleNotFound(
            f"Article {article_id} does not belong to order {order_id}.",
            expected=order_id,
            actual=record.order_id,
        )
    return record


def load_article(
    article_id: int, order_id: int | None = None
) -> tuple[Article, ProductionArticle]:
    record = get_record(article_id, order_id)
    return record, to_domain(record)


def save_article(record: Article | None, article: ProductionArticle) -> Article:
    """Persist the whole aggregate in one commit; ``record=None`` inserts it."""

    if record is None:
        record = Article()
        db.session.add(record)
    apply_to_record(record, article)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    article.id = record.id
    return record
