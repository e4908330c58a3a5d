from __future__ import annotations

import os
import sys
from datetime import datetime

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from knitflow.production.floors import LinkingType, ProductionFloor
from knitflow.production.ledger import ArticleStatus, ProductionArticle
from knitflow.production.progress import (
    calculate_progress,
    floor_status,
    floor_statuses,
    recompute_progress,
    refresh_status,
)
from knitflow.production.quantities import apply_completed_quantity


def _article(planned=100, linking_type=LinkingType.HAND_LINKING):
    return ProductionArticle.create(
        article_number="ART-500", planned_quantity=planned, linking_type=linking_type
    )


def test_zero_planned_quantity_means_zero_progress():
    article = ProductionArticle(
        article_number="ART-0", planned_quantity=0, linking_type=LinkingType.HAND_LINKING
    )
    article.floors[ProductionFloor.KNITTING].completed = 10

    assert calculate_progress(article) == 0


def test_progress_rounds_half_up():
    article = _article(planned=200)

    article.floors[ProductionFloor.KNITTING].completed = 1
    assert calculate_progress(article) == 1

    article.floors[ProductionFloor.KNITTING].completed = 5
    assert calculate_progress(article) == 3


def test_progress_is_clamped_to_one_hundred():
    article = _article()
    apply_completed_quantity(article, "Knitting", 130)

    change = recompute_progress(article)

    assert article.progress == 100
    assert (change.previous, change.new) == (0, 100)


def test_inspection_floors_count_good_units_only():
    article = _article(planned=100)
    for floor in (ProductionFloor.KNITTING, ProductionFloor.LINKING):
        article.floors[floor].completed = 10
    checking = article.floors[ProductionFloor.CHECKING]
    checking.completed = 10
    checking.m1_quantity = 4
    article.current_floor = ProductionFloor.CHECKING

    assert calculate_progress(article) == 24


def test_floors_after_the_current_floor_are_not_counted():
    article = _article()
    article.floors[ProductionFloor.KNITTING].completed = 10
    article.floors[ProductionFloor.LINKING].completed = 50

    assert calculate_progress(article) == 10


def test_progress_never_decreases_as_work_is_reported():
    article = _article(planned=300)
    seen = []
    for value in (10, 25, 5, 60, 40, 200, 350):
        apply_completed_quantity(article, "Knitting", value)
        recompute_progress(article)
        seen.append(article.progress)

    assert seen == sorted(seen)
    assert all(0 <= value <= 100 for value in seen)


def test_first_completion_starts_the_article():
    article = _article()
    apply_completed_quantity(article, "Knitting", 10)
    now = datetime(2024, 5, 1, 8, 30)

    change = refresh_status(article, now=now)

    assert article.status == ArticleStatus.IN_PROGRESS
    assert article.started_at == now
    assert (change.previous, change.new) == (ArticleStatus.PENDING, ArticleStatus.IN_PROGRESS)
    assert refresh_status(article, now=now) is None


def _settle_route(article, knitted):
    for floor in article.floor_order:
        ledger = article.floors[floor]
        if floor != ProductionFloor.KNITTING:
            ledger.received = knitted
        ledger.completed = knitted
        if floor != article.last_floor:
            ledger.transferred = knitted
        if floor in ProductionFloor.INSPECTION_FLOORS:
            ledger.m1_quantity = knitted
        if floor == ProductionFloor.CHECKING:
            ledger.m1_transferred = knitted
        ledger.recompute_remaining()
    article.current_floor = article.last_floor


def test_finishing_the_last_floor_completes_the_article():
    article = _article()
    _settle_route(article, 100)
    now = datetime(2024, 5, 2, 17, 0)

    change = refresh_status(article, now=now)

    assert article.status == ArticleStatus.COMPLETED
    assert article.completed_at == now
    assert (change.previous, change.new) == (ArticleStatus.PENDING, ArticleStatus.COMPLETED)


def test_yield_shortfall_still_completes():
    article = _article()
    _settle_route(article, 95)

    refresh_status(article)

    assert article.floors[ProductionFloor.KNITTING].remaining == 5
    assert article.status == ArticleStatus.COMPLETED


def test_work_held_upstream_keeps_the_article_open():
    article = _article()
    _settle_route(article, 100)
    article.floors[ProductionFloor.LINKING].transferred = 90
    article.floors[ProductionFloor.CHECKING].received = 90

    refresh_status(article)

    assert article.status == ArticleStatus.IN_PROGRESS
    assert article.completed_at is None


def test_floor_status_report():
    article = _article()
    knitting = article.floors[ProductionFloor.KNITTING]
    knitting.completed = 130
    knitting.m4_quantity = 5
    checking = article.floors[ProductionFloor.CHECKING]
    checking.received = 80
    checking.completed = 40
    checking.m1_quantity = 40

    knitting_status = floor_status(article, "Knitting")
    checking_status = floor_status(article, "checking")

    assert knitting_status["completion_rate"] == 130
    assert knitting_status["good_quantity"] == 125
    assert knitting_status["is_current"] is True
    assert checking_status["completion_rate"] == 50
    assert checking_status["m1_quantity"] == 40
    assert checking_status["quality_complete"] is True
    assert floor_status(article, "Washing")["completion_rate"] == 0
    assert "m1_quantity" not in floor_status(article, "Washing")


def test_floor_statuses_follow_the_route():
    article = _article(linking_type=LinkingType.AUTO_LINKING)

    floors = [status["floor"] for status in floor_statuses(article)]

    assert ProductionFloor.LINKING not in floors
    assert len(floors) == 8
