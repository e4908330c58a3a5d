"""M1-M4 quality categorization on the inspection floors."""

from __future__ import annotations

from dataclasses import dataclass

from knitflow.production.changes import FinalQualityChange, M2Shift, QualityChange, WriteOff
from knitflow.production.errors import (
    InvalidFloorForQuality,
    InvalidQuantity,
    InvalidRepairStatus,
    NothingToWriteOff,
    QualityBelowCommitted,
    QualityExceedsCapacity,
    QualityInspectionIncomplete,
    ShiftMismatch,
)
from knitflow.production.floors import ProductionFloor, is_inspection_floor
from knitflow.production.ledger import (
    QUALITY_FIELDS,
    FloorLedger,
    ProductionArticle,
    RepairStatus,
    coerce_quantity,
)


@dataclass
class QualityUpdate:
    """Replacement values for an inspection floor; ``None`` keeps the current value."""

    m1_quantity: int | None = None
    m2_quantity: int | None = None
    m3_quantity: int | None = None
    m4_quantity: int | None = None
    repair_status: str | None = None
    repair_remarks: str | None = None


_REPAIR_STATUS_BY_NAME = {status.lower(): status for status in RepairStatus.ALL_STATUSES}


def parse_repair_status(value) -> str:
    if isinstance(value, str):
        status = _REPAIR_STATUS_BY_NAME.get(value.strip().lower())
        if status is not None:
            return status
    raise InvalidRepairStatus(
        f"Unknown repair status: {value!r}.",
        expected=list(RepairStatus.ALL_STATUSES),
        actual=value,
    )


def inspection_ledger(article: ProductionArticle, floor) -> tuple[str, FloorLedger]:
    floor = article.resolve_floor(floor)
    if not is_inspection_floor(floor):
        raise InvalidFloorForQuality(
            f"Quality categories can only be recorded on Checking or Final Checking, not {floor}.",
            floor=floor,
        )
    return floor, article.floors[floor]


def quality_inspection_complete(ledger: FloorLedger) -> bool:
    return ledger.quality_total == ledger.completed


def apply_quality_categories(
    article: ProductionArticle, floor, update: QualityUpdate
) -> QualityChange:
    floor, ledger = inspection_ledger(article, floor)
    previous = ledger.quality_snapshot()

    values = {}
    for name in QUALITY_FIELDS:
        supplied = getattr(update, name)
        if supplied is None:
            values[name] = getattr(ledger, name)
        else:
            values[name] = coerce_quantity(supplied, field_name=name, floor=floor)

    total = sum(values.values())
    if total > ledger.completed:
        raise QualityExceedsCapacity(
            f"Quality total ({total}) cannot exceed completed quantity "
            f"({ledger.completed}) on {floor}.",
            floor=floor,
            expected=ledger.completed,
            actual=total,
        )
    if values["m1_quantity"] < ledger.m1_transferred:
        raise QualityBelowCommitted(
            f"M1 ({values['m1_quantity']}) cannot drop below the "
            f"{ledger.m1_transferred} units already transferred from {floor}.",
            floor=floor,
            expected=ledger.m1_transferred,
            actual=values["m1_quantity"],
        )
    defects = values["m3_quantity"] + values["m4_quantity"]
    if defects < ledger.written_off:
        raise QualityBelowCommitted(
            f"M3+M4 ({defects}) cannot drop below the "
            f"{ledger.written_off} units already written off on {floor}.",
            floor=floor,
            expected=ledger.written_off,
            actual=defects,
        )
    repair_status = (
        parse_repair_status(update.repair_status)
        if update.repair_status is not None
        else ledger.repair_status
    )

    for name, value in values.items():
        setattr(ledger, name, value)
    ledger.repair_status = repair_status
    if update.repair_remarks is not None:
        ledger.repair_remarks = update.repair_remarks
    return QualityChange(floor=floor, previous=previous, new=ledger.quality_snapshot())


def shift_m2_items(
    article: ProductionArticle,
    floor,
    from_m2,
    to_m1=0,
    to_m3=0,
    to_m4=0,
) -> M2Shift:
    """Move reworked M2 units into their final grade."""

    floor, ledger = inspection_ledger(article, floor)
    from_m2 = coerce_quantity(from_m2, field_name="fromM2", floor=floor)
    to_m1 = coerce_quantity(to_m1 or 0, field_name="toM1", floor=floor)
    to_m3 = coerce_quantity(to_m3 or 0, field_name="toM3", floor=floor)
    to_m4 = coerce_quantity(to_m4 or 0, field_name="toM4", floor=floor)

    if from_m2 == 0:
        raise InvalidQuantity(
            "At least one M2 unit must be shifted.", floor=floor, expected=1, actual=0
        )
    if from_m2 > ledger.m2_quantity:
        raise ShiftMismatch(
            f"Cannot shift {from_m2} M2 units, only {ledger.m2_quantity} available on {floor}.",
            floor=floor,
            expected=ledger.m2_quantity,
            actual=from_m2,
        )
    shifted = to_m1 + to_m3 + to_m4
    if shifted != from_m2:
        raise ShiftMismatch(
            f"Shifted units ({shifted}) must equal the M2 units taken ({from_m2}).",
            floor=floor,
            expected=from_m2,
            actual=shifted,
        )

    previous = ledger.quality_snapshot()
    ledger.m2_quantity -= from_m2
    ledger.m1_quantity += to_m1
    ledger.m3_quantity += to_m3
    ledger.m4_quantity += to_m4
    if ledger.m2_quantity == 0 and ledger.repair_status == RepairStatus.IN_REVIEW:
        ledger.repair_status = RepairStatus.REPAIRED
    return M2Shift(
        floor=floor,
        from_m2=from_m2,
        to_m1=to_m1,
        to_m3=to_m3,
        to_m4=to_m4,
        previous=previous,
        new=ledger.quality_snapshot(),
    )


def confirm_final_quality(
    article: ProductionArticle, floor, confirmed: bool = True
) -> FinalQualityChange:
    floor = article.resolve_floor(floor)
    if floor != ProductionFloor.FINAL_CHECKING:
        raise InvalidFloorForQuality(
            f"Final quality can only be confirmed on Final Checking, not {floor}.",
            floor=floor,
            expected=ProductionFloor.FINAL_CHECKING,
        )
    ledger = article.floors[floor]
    if confirmed and not quality_inspection_complete(ledger):
        raise QualityInspectionIncomplete(
            f"All {ledger.completed} completed units must be categorized before "
            f"final confirmation ({ledger.quality_total} categorized).",
            floor=floor,
            expected=ledger.completed,
            actual=ledger.quality_total,
        )
    previous = article.final_quality_confirmed
    article.final_quality_confirmed = bool(confirmed)
    return FinalQualityChange(
        floor=floor,
        previous=previous,
        new=article.final_quality_confirmed,
        quantity=ledger.completed,
    )


def write_off_defects(article: ProductionArticle, floor) -> WriteOff:
    """Dispose of the M3 and M4 units of an inspection floor.

    Written-off units count as handed over when deciding whether the floor is
    settled, so the article can move on without them.
    """

    floor, ledger = inspection_ledger(article, floor)
    # units already handed on cannot be written off as well
    open_defects = max(0, min(ledger.defect_total, ledger.completed - ledger.transferred))
    outstanding = open_defects - ledger.written_off
    if outstanding <= 0:
        raise NothingToWriteOff(
            f"No M3/M4 units left to write off on {floor}.",
            floor=floor,
            actual=ledger.defect_total,
        )
    ledger.written_off = open_defects
    ledger.repair_status = RepairStatus.REJECTED
    return WriteOff(floor=floor, quantity=outstanding, written_off_total=ledger.written_off)
