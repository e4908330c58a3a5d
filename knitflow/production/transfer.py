"""Moving finished work from one floor's ledger into the next floor's.

Transfers are additive: the next floor's ``received`` grows by the amount
handed over and is never overwritten with a running total. Checking only
hands over M1 units, and only once every completed unit is categorized;
every other floor forwards what it completed and has not written off.
"""

from __future__ import annotations

from knitflow.production.changes import FloorAdvance, TransferHop
from knitflow.production.errors import (
    NoNextFloor,
    NothingToTransfer,
    QualityInspectionIncomplete,
    TransferExceedsAvailable,
)
from knitflow.production.floors import ProductionFloor, forwards_good_only, is_inspection_floor
from knitflow.production.ledger import ProductionArticle, RepairStatus, coerce_quantity
from knitflow.production.quality import quality_inspection_complete


def forwardable_quantity(article: ProductionArticle, floor) -> int:
    """Units on ``floor`` that are finished but not yet handed over."""

    floor = article.resolve_floor(floor)
    ledger = article.floors[floor]
    if forwards_good_only(floor):
        return max(0, ledger.m1_quantity - ledger.m1_transferred)
    return max(0, ledger.completed - ledger.transferred - ledger.written_off)


def transfer_forward(
    article: ProductionArticle,
    floor,
    quantity=None,
    *,
    strict: bool = True,
    cascade: bool = False,
) -> TransferHop | None:
    """Hand finished units of ``floor`` to the next floor in the route.

    Without ``quantity`` everything forwardable moves, which on the first floor
    includes overproduction. With ``strict=False`` the state errors become a
    ``None`` result so automatic passes can skip floors with nothing to move.
    """

    floor = article.resolve_floor(floor)
    target = article.next_floor(floor)
    if target is None:
        if strict:
            raise NoNextFloor(f"{floor} is the last floor of the route.", floor=floor)
        return None

    ledger = article.floors[floor]
    good_only = forwards_good_only(floor)
    if good_only and not quality_inspection_complete(ledger):
        if strict:
            raise QualityInspectionIncomplete(
                f"Categorize all {ledger.completed} completed units on {floor} before "
                f"transferring M1 ({ledger.quality_total} categorized).",
                floor=floor,
                expected=ledger.completed,
                actual=ledger.quality_total,
            )
        return None

    available = forwardable_quantity(article, floor)
    if available <= 0:
        if strict:
            raise NothingToTransfer(
                f"No finished units waiting on {floor}.", floor=floor, actual=0
            )
        return None

    if quantity is None:
        amount = available
    else:
        amount = coerce_quantity(quantity, field_name="Transfer quantity", floor=floor)
        if amount == 0 or amount > available:
            raise TransferExceedsAvailable(
                f"Transfer quantity must be between 1 and {available} on {floor}.",
                floor=floor,
                expected=available,
                actual=amount,
            )

    ledger.transferred += amount
    if good_only:
        ledger.m1_transferred += amount
    ledger.recompute_remaining()
    next_ledger = article.floors[target]
    next_ledger.received += amount
    next_ledger.recompute_remaining()

    return TransferHop(
        from_floor=floor,
        to_floor=target,
        quantity=amount,
        from_completed=ledger.completed,
        from_transferred=ledger.transferred,
        from_remaining=ledger.remaining,
        to_received=next_ledger.received,
        to_remaining=next_ledger.remaining,
        good_only=good_only,
        cascade=cascade,
        quality=ledger.quality_snapshot() if good_only else None,
    )


def enter_floor(article: ProductionArticle, floor: str) -> None:
    """Reset the bookkeeping that belongs to a floor the article just reached."""

    if floor == ProductionFloor.FINAL_CHECKING:
        article.final_quality_confirmed = False
    ledger = article.floors[floor]
    if is_inspection_floor(floor) and ledger.quality_total == 0:
        ledger.repair_status = RepairStatus.NOT_REQUIRED
        ledger.repair_remarks = ""


def advance_if_settled(article: ProductionArticle) -> FloorAdvance | None:
    """Move the current-floor pointer past every settled floor."""

    start = article.current_floor
    if start not in article.floor_order:
        return None
    while True:
        target = article.next_floor(article.current_floor)
        if target is None or not article.floors[article.current_floor].is_settled():
            break
        article.current_floor = target
        enter_floor(article, target)
    if article.current_floor == start:
        return None
    return FloorAdvance(from_floor=start, to_floor=article.current_floor)


def cascade_transfers(article: ProductionArticle, exclude: str | None = None) -> list[TransferHop]:
    """Forward work left behind on floors the article has already passed."""

    if article.current_floor not in article.floor_order:
        return []
    hops = []
    for floor in article.floor_order[: article.floor_index(article.current_floor)]:
        if floor == exclude:
            continue
        hop = transfer_forward(article, floor, strict=False, cascade=True)
        if hop is not None:
            hops.append(hop)
    return hops


def run_transfer_pass(
    article: ProductionArticle, floor, quantity=None, *, strict: bool = False
) -> list[TransferHop | FloorAdvance]:
    """Transfer ``floor``, catch up earlier floors and advance the pointer.

    Automatic passes after a quantity or quality update run with
    ``strict=False``; a manual transfer request runs strict so that an
    impossible transfer is reported to the caller.
    """

    floor = article.resolve_floor(floor)
    changes: list[TransferHop | FloorAdvance] = []
    hop = transfer_forward(article, floor, quantity, strict=strict)
    if hop is not None:
        changes.append(hop)
    changes.extend(cascade_transfers(article, exclude=floor))
    advance = advance_if_settled(article)
    if advance is not None:
        changes.append(advance)
    return changes
