from __future__ import annotations

import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from knitflow.production.changes import FloorAdvance, TransferHop
from knitflow.production.errors import (
    NoNextFloor,
    NothingToTransfer,
    QualityInspectionIncomplete,
    TransferExceedsAvailable,
)
from knitflow.production.floors import LinkingType, ProductionFloor
from knitflow.production.ledger import ProductionArticle, RepairStatus, find_violations
from knitflow.production.quality import (
    QualityUpdate,
    apply_quality_categories,
    shift_m2_items,
    write_off_defects,
)
from knitflow.production.quantities import apply_completed_quantity
from knitflow.production.transfer import (
    advance_if_settled,
    forwardable_quantity,
    run_transfer_pass,
    transfer_forward,
)


def _article(planned=100, linking_type=LinkingType.HAND_LINKING):
    return ProductionArticle.create(
        article_number="ART-400", planned_quantity=planned, linking_type=linking_type
    )


def _checking_article(completed=100):
    article = _article()
    checking = article.floors[ProductionFloor.CHECKING]
    checking.received = completed
    checking.completed = completed
    article.current_floor = ProductionFloor.CHECKING
    return article


def test_end_to_end_partial_m1_transfer_keeps_article_on_checking():
    article = _article(planned=1000)

    apply_completed_quantity(article, "Knitting", 1050)
    changes = run_transfer_pass(article, "Knitting")
    assert [type(change) for change in changes] == [TransferHop, FloorAdvance]
    assert article.floors[ProductionFloor.LINKING].received == 1050
    assert article.current_floor == ProductionFloor.LINKING

    apply_completed_quantity(article, "Linking", 1050)
    run_transfer_pass(article, "Linking")
    assert article.floors[ProductionFloor.CHECKING].received == 1050
    assert article.current_floor == ProductionFloor.CHECKING

    apply_completed_quantity(article, "Checking", 1050)
    assert run_transfer_pass(article, "Checking") == []

    apply_quality_categories(
        article,
        "Checking",
        QualityUpdate(m1_quantity=900, m2_quantity=100, m3_quantity=30, m4_quantity=20),
    )
    [hop] = run_transfer_pass(article, "Checking")
    checking = article.floors[ProductionFloor.CHECKING]
    assert hop.quantity == 900
    assert article.floors[ProductionFloor.WASHING].received == 900
    assert checking.transferred == 900
    assert checking.m1_transferred == 900
    assert article.current_floor == ProductionFloor.CHECKING

    write_off_defects(article, "Checking")
    run_transfer_pass(article, "Checking")
    assert article.current_floor == ProductionFloor.CHECKING

    shift_m2_items(article, "Checking", 100, to_m1=100)
    changes = run_transfer_pass(article, "Checking")
    assert changes[0].quantity == 100
    assert changes[-1] == FloorAdvance(ProductionFloor.CHECKING, ProductionFloor.WASHING)
    assert article.floors[ProductionFloor.WASHING].received == 1000
    assert article.current_floor == ProductionFloor.WASHING
    assert find_violations(article) == []


def test_overproduction_moves_forward_in_full():
    article = _article(planned=100)
    apply_completed_quantity(article, "Knitting", 130)

    hop = transfer_forward(article, "Knitting")

    assert hop.quantity == 130
    assert article.floors[ProductionFloor.LINKING].received == 130
    assert article.floors[ProductionFloor.KNITTING].transferred == 130


def test_m1_transfer_waits_for_complete_inspection():
    article = _checking_article(completed=100)
    apply_quality_categories(
        article, "Checking", QualityUpdate(m1_quantity=50, m2_quantity=20, m3_quantity=10)
    )

    with pytest.raises(QualityInspectionIncomplete) as excinfo:
        transfer_forward(article, "Checking")
    assert excinfo.value.expected == 100
    assert excinfo.value.actual == 80
    assert transfer_forward(article, "Checking", strict=False) is None

    apply_quality_categories(article, "Checking", QualityUpdate(m4_quantity=20))
    hop = transfer_forward(article, "Checking")

    assert hop.quantity == 50
    assert hop.good_only is True
    assert "M1: 50 (transferred)" in hop.log_entries()[0]["remarks"]
    assert article.floors[ProductionFloor.WASHING].received == 50


def test_transfer_state_errors():
    article = _article()

    with pytest.raises(NothingToTransfer):
        transfer_forward(article, "Knitting")
    assert transfer_forward(article, "Knitting", strict=False) is None
    with pytest.raises(NoNextFloor):
        transfer_forward(article, "Dispatch")
    assert transfer_forward(article, "Dispatch", strict=False) is None


def test_explicit_quantity_is_bounded_and_additive():
    article = _article()
    apply_completed_quantity(article, "Knitting", 100)

    transfer_forward(article, "Knitting", 40)
    assert forwardable_quantity(article, "Knitting") == 60

    with pytest.raises(TransferExceedsAvailable):
        transfer_forward(article, "Knitting", 70)
    with pytest.raises(TransferExceedsAvailable):
        transfer_forward(article, "Knitting", 0)

    transfer_forward(article, "Knitting", 60)
    assert article.floors[ProductionFloor.LINKING].received == 100
    assert article.floors[ProductionFloor.LINKING].remaining == 100


def test_cascade_forwards_work_left_on_earlier_floors():
    article = _article()
    apply_completed_quantity(article, "Knitting", 100)
    run_transfer_pass(article, "Knitting")
    apply_completed_quantity(article, "Linking", 100)
    run_transfer_pass(article, "Linking")
    assert article.current_floor == ProductionFloor.CHECKING

    apply_completed_quantity(article, "Knitting", 120)
    apply_completed_quantity(article, "Checking", 100)
    changes = run_transfer_pass(article, "Checking")

    [hop] = changes
    assert hop.from_floor == ProductionFloor.KNITTING
    assert hop.quantity == 20
    assert hop.cascade is True
    assert hop.log_entries()[0]["change_reason"] == "Previous floor work transfer"
    assert article.floors[ProductionFloor.LINKING].received == 120
    assert article.floors[ProductionFloor.LINKING].remaining == 20


def test_pointer_stays_while_completed_units_are_held_back():
    article = _article()
    apply_completed_quantity(article, "Knitting", 60)

    transfer_forward(article, "Knitting", 40)

    assert advance_if_settled(article) is None
    assert article.current_floor == ProductionFloor.KNITTING


def test_shortfall_floor_advances_once_its_output_is_handed_over():
    article = _article(planned=1000)
    apply_completed_quantity(article, "Knitting", 950)

    changes = run_transfer_pass(article, "Knitting")

    assert [type(change) for change in changes] == [TransferHop, FloorAdvance]
    assert article.current_floor == ProductionFloor.LINKING
    assert article.floors[ProductionFloor.KNITTING].remaining == 50
    assert article.floors[ProductionFloor.LINKING].received == 950
    with pytest.raises(NothingToTransfer):
        transfer_forward(article, "Knitting")


def test_final_checking_forwards_completed_units_without_categories():
    article = _article()
    final = article.floors[ProductionFloor.FINAL_CHECKING]
    final.received = 100
    final.completed = 100
    article.current_floor = ProductionFloor.FINAL_CHECKING

    hop = transfer_forward(article, "Final Checking")

    assert hop.quantity == 100
    assert hop.good_only is False
    assert hop.quality is None
    assert article.floors[ProductionFloor.BRANDING].received == 100
    assert final.m1_transferred == 0
    assert advance_if_settled(article) == FloorAdvance(
        ProductionFloor.FINAL_CHECKING, ProductionFloor.BRANDING
    )


def test_written_off_units_stay_on_final_checking():
    article = _article()
    final = article.floors[ProductionFloor.FINAL_CHECKING]
    final.received = 100
    final.completed = 100
    article.current_floor = ProductionFloor.FINAL_CHECKING
    apply_quality_categories(
        article, "Final Checking", QualityUpdate(m1_quantity=90, m4_quantity=10)
    )
    write_off_defects(article, "Final Checking")

    hop = transfer_forward(article, "Final Checking")

    assert hop.quantity == 90
    assert final.transferred == 90
    assert final.written_off == 10
    assert final.is_settled()


def _assert_conserved(article):
    assert find_violations(article) == []
    order = article.floor_order
    for floor, following in zip(order, order[1:]):
        ledger = article.floors[floor]
        handed_over = ledger.completed if article.is_first_floor(floor) else ledger.transferred
        assert ledger.transferred <= ledger.completed
        assert article.floors[following].received <= handed_over
        if not article.is_first_floor(floor):
            assert ledger.completed <= ledger.received


def test_ledgers_stay_conserved_through_a_mixed_sequence():
    article = _article(planned=100)
    steps = [
        lambda: apply_completed_quantity(article, "Knitting", 40),
        lambda: run_transfer_pass(article, "Knitting"),
        lambda: apply_completed_quantity(article, "Linking", 30),
        lambda: run_transfer_pass(article, "Linking"),
        # knitting finishes short of the planned 100
        lambda: apply_completed_quantity(article, "Knitting", 95),
        lambda: run_transfer_pass(article, "Knitting"),
        lambda: apply_completed_quantity(article, "Linking", 20),
        lambda: run_transfer_pass(article, "Linking"),
        lambda: apply_completed_quantity(article, "Checking", 50),
        lambda: run_transfer_pass(article, "Checking"),
        lambda: apply_quality_categories(
            article,
            "Checking",
            QualityUpdate(m1_quantity=30, m2_quantity=10, m3_quantity=5, m4_quantity=5),
        ),
        lambda: run_transfer_pass(article, "Checking"),
        lambda: apply_quality_categories(
            article, "Checking", QualityUpdate(m1_quantity=35, m2_quantity=5)
        ),
        lambda: run_transfer_pass(article, "Checking"),
        lambda: shift_m2_items(article, "Checking", 5, to_m1=5),
        lambda: run_transfer_pass(article, "Checking"),
        lambda: write_off_defects(article, "Checking"),
        lambda: run_transfer_pass(article, "Checking"),
        lambda: apply_completed_quantity(article, "Linking", 45),
        lambda: run_transfer_pass(article, "Linking"),
        lambda: apply_completed_quantity(article, "Washing", 40),
        lambda: run_transfer_pass(article, "Washing"),
    ]

    for step in steps:
        step()
        _assert_conserved(article)

    assert article.floors[ProductionFloor.KNITTING].remaining == 5
    assert article.floors[ProductionFloor.LINKING].transferred == 95
    assert article.floors[ProductionFloor.CHECKING].received == 95
    assert article.floors[ProductionFloor.CHECKING].written_off == 10
    assert article.floors[ProductionFloor.WASHING].received == 40
    assert article.current_floor == ProductionFloor.BOARDING


def test_pointer_skips_floors_already_finished_ahead():
    article = _article(linking_type=LinkingType.AUTO_LINKING)
    apply_completed_quantity(article, "Knitting", 100)
    transfer_forward(article, "Knitting")
    checking = article.floors[ProductionFloor.CHECKING]
    checking.completed = 100
    checking.m1_quantity = 100
    transfer_forward(article, "Checking")

    advance = advance_if_settled(article)

    assert advance == FloorAdvance(ProductionFloor.KNITTING, ProductionFloor.WASHING)
    assert article.current_floor == ProductionFloor.WASHING


def test_entering_final_checking_resets_its_bookkeeping():
    article = _article()
    boarding = article.floors[ProductionFloor.BOARDING]
    boarding.received = 100
    boarding.completed = 100
    article.current_floor = ProductionFloor.BOARDING
    article.final_quality_confirmed = True
    article.floors[ProductionFloor.FINAL_CHECKING].repair_status = RepairStatus.REJECTED

    run_transfer_pass(article, "Boarding")

    assert article.current_floor == ProductionFloor.FINAL_CHECKING
    assert article.final_quality_confirmed is False
    assert article.floors[ProductionFloor.FINAL_CHECKING].repair_status == RepairStatus.NOT_REQUIRED
    assert article.floors[ProductionFloor.FINAL_CHECKING].received == 100
