"""Per-floor quantity ledgers and the in-memory article aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from knitflow.production.errors import InvalidFloor, InvalidQuantity
from knitflow.production.floors import (
    ProductionFloor,
    forwards_good_only,
    is_inspection_floor,
    parse_floor,
    parse_linking_type,
    resolve_floor_order,
)


class ArticleStatus:
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    ALL_STATUSES = [PENDING, IN_PROGRESS, COMPLETED]


class RepairStatus:
    NOT_REQUIRED = "Not Required"
    IN_REVIEW = "In Review"
    REPAIRED = "Repaired"
    REJECTED = "Rejected"

    ALL_STATUSES = [NOT_REQUIRED, IN_REVIEW, REPAIRED, REJECTED]


BASE_FIELDS = ("received", "completed", "transferred", "remaining")
QUALITY_FIELDS = ("m1_quantity", "m2_quantity", "m3_quantity", "m4_quantity")
INSPECTION_FIELDS = QUALITY_FIELDS + ("m1_transferred", "written_off")
QUANTITY_FIELDS = BASE_FIELDS + INSPECTION_FIELDS


def coerce_quantity(value, *, field_name: str = "quantity", floor: str | None = None) -> int:
    """Return ``value`` as a non-negative whole number of units."""

    if isinstance(value, bool) or value is None:
        raise InvalidQuantity(
            f"{field_name} must be a whole number.", floor=floor, actual=value
        )
    if isinstance(value, int):
        number = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidQuantity(
                f"{field_name} must be a whole number.", floor=floor, actual=value
            ) from None
        if not parsed.is_finite() or parsed != parsed.to_integral_value():
            raise InvalidQuantity(
                f"{field_name} must be a whole number.", floor=floor, actual=value
            )
        number = int(parsed)
    if number < 0:
        raise InvalidQuantity(
            f"{field_name} cannot be negative.", floor=floor, expected=0, actual=number
        )
    return number


@dataclass
class FloorLedger:
    received: int = 0
    completed: int = 0
    transferred: int = 0
    remaining: int = 0
    m1_quantity: int = 0
    m2_quantity: int = 0
    m3_quantity: int = 0
    m4_quantity: int = 0
    m1_transferred: int = 0
    written_off: int = 0
    repair_status: str = RepairStatus.NOT_REQUIRED
    repair_remarks: str = ""

    @property
    def quality_total(self) -> int:
        return self.m1_quantity + self.m2_quantity + self.m3_quantity + self.m4_quantity

    @property
    def defect_total(self) -> int:
        return self.m3_quantity + self.m4_quantity

    @property
    def pending_forward(self) -> int:
        return self.completed - self.transferred

    def recompute_remaining(self) -> int:
        self.remaining = max(0, self.received - self.completed)
        return self.remaining

    def is_settled(self) -> bool:
        """Every completed unit has been handed over or written off.

        A floor that finishes below what it received still settles; the
        shortfall stays visible in ``remaining``.
        """

        return self.completed > 0 and self.transferred + self.written_off >= self.completed

    def quality_snapshot(self) -> dict[str, Any]:
        return {
            "m1_quantity": self.m1_quantity,
            "m2_quantity": self.m2_quantity,
            "m3_quantity": self.m3_quantity,
            "m4_quantity": self.m4_quantity,
            "repair_status": self.repair_status,
            "repair_remarks": self.repair_remarks,
        }

    def to_dict(self, floor: str) -> dict[str, Any]:
        data: dict[str, Any] = {name: getattr(self, name) for name in BASE_FIELDS}
        if is_inspection_floor(floor):
            for name in INSPECTION_FIELDS:
                data[name] = getattr(self, name)
            data["repair_status"] = self.repair_status
            data["repair_remarks"] = self.repair_remarks
        elif floor == ProductionFloor.KNITTING:
            data["m4_quantity"] = self.m4_quantity
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FloorLedger":
        data = data or {}
        ledger = cls()
        for name in QUANTITY_FIELDS:
            raw = data.get(name)
            setattr(ledger, name, int(raw) if raw else 0)
        ledger.repair_status = data.get("repair_status") or RepairStatus.NOT_REQUIRED
        ledger.repair_remarks = data.get("repair_remarks") or ""
        return ledger


def empty_floor_ledgers() -> dict[str, FloorLedger]:
    return {floor: FloorLedger() for floor in ProductionFloor.ALL_FLOORS}


def load_floor_quantities(data: Mapping[str, Any] | None) -> dict[str, FloorLedger]:
    """Build ledgers for every floor from their stored form, keyed by floor label."""

    data = data or {}
    return {
        floor: FloorLedger.from_dict(data.get(ProductionFloor.KEYS[floor]))
        for floor in ProductionFloor.ALL_FLOORS
    }


def dump_floor_quantities(floors: Mapping[str, FloorLedger]) -> dict[str, dict[str, Any]]:
    return {
        ProductionFloor.KEYS[floor]: floors[floor].to_dict(floor)
        for floor in ProductionFloor.ALL_FLOORS
    }


@dataclass
class ProductionArticle:
    """An article and its floor ledgers, loaded as one unit of work."""

    article_number: str
    planned_quantity: int
    linking_type: str
    id: int | None = None
    order_id: int | None = None
    current_floor: str = ProductionFloor.KNITTING
    status: str = ArticleStatus.PENDING
    progress: int = 0
    floors: dict[str, FloorLedger] = field(default_factory=empty_floor_ledgers)
    final_quality_confirmed: bool = False
    remarks: str | None = None
    machine_id: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def create(
        cls,
        *,
        article_number: str,
        planned_quantity,
        linking_type: str,
        order_id: int | None = None,
        remarks: str | None = None,
        machine_id: str | None = None,
    ) -> "ProductionArticle":
        planned = coerce_quantity(planned_quantity, field_name="Planned quantity")
        if planned == 0:
            raise InvalidQuantity(
                "Planned quantity must be greater than zero.", expected=1, actual=0
            )
        article = cls(
            article_number=article_number,
            planned_quantity=planned,
            linking_type=parse_linking_type(linking_type),
            order_id=order_id,
            remarks=remarks,
            machine_id=machine_id,
        )
        first = article.first_floor
        article.current_floor = first
        article.floors[first].received = planned
        article.floors[first].recompute_remaining()
        return article

    @property
    def floor_order(self) -> list[str]:
        return resolve_floor_order(self.linking_type)

    @property
    def first_floor(self) -> str:
        return self.floor_order[0]

    @property
    def last_floor(self) -> str:
        return self.floor_order[-1]

    def resolve_floor(self, floor) -> str:
        """Canonical label of ``floor``, which must be part of this article's route."""

        floor = parse_floor(floor)
        if floor not in self.floor_order:
            raise InvalidFloor(
                f"{floor} is not part of the {self.linking_type} floor sequence.",
                floor=floor,
            )
        return floor

    def ledger(self, floor) -> FloorLedger:
        return self.floors[self.resolve_floor(floor)]

    def is_first_floor(self, floor: str) -> bool:
        return floor == self.first_floor

    def floor_index(self, floor: str) -> int:
        return self.floor_order.index(floor)

    def next_floor(self, floor: str) -> str | None:
        order = self.floor_order
        index = order.index(floor)
        if index == len(order) - 1:
            return None
        return order[index + 1]

    def previous_floor(self, floor: str) -> str | None:
        index = self.floor_order.index(floor)
        if index == 0:
            return None
        return self.floor_order[index - 1]

    def floor_quantities(self) -> dict[str, dict[str, Any]]:
        return dump_floor_quantities(self.floors)


@dataclass(frozen=True)
class LedgerViolation:
    floor: str | None
    rule: str
    message: str


def find_violations(article: ProductionArticle) -> list[LedgerViolation]:
    """Report every ledger invariant the article currently breaks.

    Nothing is modified; :func:`knitflow.production.repair.repair_ledgers`
    performs the matching corrections.
    """

    violations: list[LedgerViolation] = []
    order = article.floor_order

    if article.current_floor not in order:
        violations.append(
            LedgerViolation(
                None,
                "current_floor_off_sequence",
                f"Current floor {article.current_floor} is not part of the route.",
            )
        )

    for floor in ProductionFloor.ALL_FLOORS:
        ledger = article.floors[floor]
        if floor not in order:
            if any(getattr(ledger, name) for name in QUANTITY_FIELDS):
                violations.append(
                    LedgerViolation(floor, "off_sequence_data", f"{floor} is off route but holds quantities.")
                )
            continue

        for name in QUANTITY_FIELDS:
            if getattr(ledger, name) < 0:
                violations.append(
                    LedgerViolation(floor, "negative_quantity", f"{name} is negative ({getattr(ledger, name)}).")
                )

        if ledger.transferred > ledger.completed:
            violations.append(
                LedgerViolation(
                    floor,
                    "transferred_exceeds_completed",
                    f"Transferred ({ledger.transferred}) exceeds completed ({ledger.completed}).",
                )
            )
        if not article.is_first_floor(floor) and ledger.completed > ledger.received:
            violations.append(
                LedgerViolation(
                    floor,
                    "completed_exceeds_received",
                    f"Completed ({ledger.completed}) exceeds received ({ledger.received}).",
                )
            )
        expected_remaining = max(0, ledger.received - ledger.completed)
        if ledger.remaining != expected_remaining:
            violations.append(
                LedgerViolation(
                    floor,
                    "remaining_mismatch",
                    f"Remaining is {ledger.remaining}, expected {expected_remaining}.",
                )
            )
        if is_inspection_floor(floor):
            if ledger.quality_total > ledger.received:
                violations.append(
                    LedgerViolation(
                        floor,
                        "quality_exceeds_received",
                        f"Quality total ({ledger.quality_total}) exceeds received ({ledger.received}).",
                    )
                )
        if forwards_good_only(floor):
            if ledger.transferred > ledger.m1_quantity or ledger.m1_transferred != ledger.transferred:
                violations.append(
                    LedgerViolation(
                        floor,
                        "transferred_not_m1",
                        f"Transferred ({ledger.transferred}) does not match forwarded M1 "
                        f"({ledger.m1_transferred} of {ledger.m1_quantity}).",
                    )
                )
        elif ledger.m1_transferred:
            violations.append(
                LedgerViolation(
                    floor,
                    "transferred_not_m1",
                    f"{floor} forwards all completed units but records "
                    f"{ledger.m1_transferred} as forwarded M1.",
                )
            )

        previous =article.previous_floor(floor)
        if previous is not None:
            upstream = article.floors[previous]
            bound = upstream.completed if article.is_first_floor(previous) else upstream.transferred
            if ledger.received > bound:
                violations.append(
                    LedgerViolation(
                        floor,
                        "received_exceeds_upstream",
                        f"Received ({ledger.received}) exceeds what {previous} handed over ({bound}).",
                    )
                )

    return violations
