from datetime import datetime

from knitflow.extensions import db
from knitflow.production.floors import ProductionFloor
from knitflow.production.ledger import ArticleStatus


class ProductionOrderStatus:
    OPEN = "OPEN"
    IN_PRODUCTION = "IN_PRODUCTION"
    CLOSED = "CLOSED"

    ALL_STATUSES = [OPEN, IN_PRODUCTION, CLOSED]


class ProductionOrder(db.Model):
    __tablename__ = "production_order"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), unique=True, nullable=False)
    status = db.Column(db.String(32), nullable=False, default=ProductionOrderStatus.OPEN)
    # Mirror of the most recently advanced article's floor.
    current_floor = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    articles = db.relationship(
        "Article",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Article.id",
    )


class Article(db.Model):
    __tablename__ = "production_article"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("production_order.id"), nullable=True, index=True
    )
    article_number = db.Column(db.String(64), nullable=False, index=True)
    planned_quantity = db.Column(db.Integer, nullable=False)
    linking_type = db.Column(db.String(32), nullable=False)
    current_floor = db.Column(
        db.String(32), nullable=False, default=ProductionFloor.KNITTING
    )
    status = db.Column(db.String(32), nullable=False, default=ArticleStatus.PENDING)
    progress = db.Column(db.Integer, nullable=False, default=0)
    floor_quantities = db.Column(db.JSON, nullable=False, default=dict)
    final_quality_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    remarks = db.Column(db.Text, nullable=True)
    machine_id = db.Column(db.String(64), nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    order = db.relationship("ProductionOrder", back_populates="articles")
    logs = db.relationship(
        "ArticleLog",
        back_populates="article",
        order_by="ArticleLog.id",
        lazy="dynamic",
    )


class ArticleLog(db.Model):
    """Append-only history of article mutations."""

    __tablename__ = "production_article_log"

    id = db.Column(db.Integer, primary_key=True)
    article_id = db.Column(
        db.Integer, db.ForeignKey("production_article.id"), nullable=False, index=True
    )
    order_id = db.Column(db.Integer, nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    floor = db.Column(db.String(32), nullable=True)
    from_floor = db.Column(db.String(32), nullable=True)
    to_floor = db.Column(db.String(32), nullable=True)
    previous_value = db.Column(db.String(255), nullable=True)
    new_value = db.Column(db.String(255), nullable=True)
    remarks = db.Column(db.Text, nullable=True)
    change_reason = db.Column(db.String(255), nullable=True)
    quality_status = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.String(64), nullable=False)
    floor_supervisor_id = db.Column(db.String(64), nullable=True)
    machine_id = db.Column(db.String(64), nullable=True)
    shift_id = db.Column(db.String(64), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    article = db.relationship("Article", back_populates="logs")
