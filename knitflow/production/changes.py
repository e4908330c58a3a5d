"""Descriptions of what a ledger operation changed.

The pure operations return these instead of writing audit rows themselves;
``knitflow.services.article_log`` turns ``log_entries()`` into ``ArticleLog``
records once the article has been saved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

QUALITY_LABELS = {
    "m1_quantity": ("M1", "M1 - Good Quality"),
    "m2_quantity": ("M2", "M2 - Needs Repair"),
    "m3_quantity": ("M3", "M3 - Minor Defects"),
    "m4_quantity": ("M4", "M4 - Major Defects"),
}


def _entry(action: str, **fields: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "action": action,
        "quantity": 0,
        "floor": None,
        "from_floor": None,
        "to_floor": None,
        "previous_value": None,
        "new_value": None,
        "remarks": None,
        "change_reason": None,
        "quality_status": None,
        "details": None,
    }
    entry.update(fields)
    return entry


@dataclass(frozen=True)
class ArticleCreated:
    floor: str
    planned_quantity: int
    linking_type: str

    def log_entries(self) -> list[dict[str, Any]]:
        return [
            _entry(
                "Article Created",
                quantity=self.planned_quantity,
                floor=self.floor,
                new_value=self.floor,
                remarks=(
                    f"{self.planned_quantity} units planned ({self.linking_type}), "
                    f"starting on {self.floor}"
                ),
                change_reason="Production planning",
            )
        ]


@dataclass(frozen=True)
class QuantityChange:
    floor: str
    previous: int
    new: int
    received: int
    remaining: int
    overproduction: bool = False

    @property
    def delta(self) -> int:
        return self.new - self.previous

    def log_entries(self) -> list[dict[str, Any]]:
        if self.new == self.previous:
            return []
        return [
            _entry(
                "Quantity Updated",
                quantity=self.delta,
                floor=self.floor,
                previous_value=self.previous,
                new_value=self.new,
                remarks=(
                    f"Completed {self.new} units on {self.floor} floor "
                    f"({self.remaining} remaining)"
                ),
                change_reason="Production progress update",
                details={
                    "received": self.received,
                    "remaining": self.remaining,
                    "overproduction": self.overproduction,
                },
            )
        ]


@dataclass(frozen=True)
class DefectChange:
    floor: str
    previous: int
    new: int

    def log_entries(self) -> list[dict[str, Any]]:
        if self.new == self.previous:
            return []
        return [
            _entry(
                "M4 Quantity Updated",
                quantity=self.new - self.previous,
                floor=self.floor,
                previous_value=self.previous,
                new_value=self.new,
                remarks=f"Defect count set to {self.new} on {self.floor} floor",
                change_reason="Knitting defect count",
                quality_status="M4 - Major Defects",
            )
        ]


@dataclass(frozen=True)
class QualityChange:
    floor: str
    previous: dict[str, Any]
    new: dict[str, Any]

    @property
    def changed(self) -> bool:
        return self.previous != self.new

    def log_entries(self) -> list[dict[str, Any]]:
        if not self.changed:
            return []
        entries = []
        for name, (short_label, quality_status) in QUALITY_LABELS.items():
            before = self.previous[name]
            after = self.new[name]
            if before == after:
                continue
            entries.append(
                _entry(
                    f"{short_label} Quantity Updated",
                    quantity=after - before,
                    floor=self.floor,
                    previous_value=before,
                    new_value=after,
                    remarks=f"{short_label} quantity updated to {after} on {self.floor} floor",
                    change_reason="Quality inspection",
                    quality_status=quality_status,
                )
            )
        total = sum(self.new[name] for name in QUALITY_LABELS)
        entries.append(
            _entry(
                "Quality Inspection",
                quantity=total,
                floor=self.floor,
                previous_value=self.previous.get("repair_status"),
                new_value=self.new.get("repair_status"),
                remarks=(
                    f"Quality inspection on {self.floor}: "
                    + ", ".join(
                        f"{label}: {self.new[name]}"
                        for name, (label, _status) in QUALITY_LABELS.items()
                    )
                ),
                change_reason="Quality inspection",
                details={"previous": dict(self.previous), "new": dict(self.new)},
            )
        )
        return entries


@dataclass(frozen=True)
class M2Shift:
    floor: str
    from_m2: int
    to_m1: int
    to_m3: int
    to_m4: int
    previous: dict[str, Any]
    new: dict[str, Any]

    def log_entries(self) -> list[dict[str, Any]]:
        entries = []
        m2_before = self.previous["m2_quantity"]
        for target, amount, reason, quality_status in (
            ("M1", self.to_m1, "M2 repair process - items successfully repaired", "M1 - Good Quality"),
            ("M3", self.to_m3, "M2 repair process - items have minor defects", "M3 - Minor Defects"),
            ("M4", self.to_m4, "M2 repair process - items have major defects", "M4 - Major Defects"),
        ):
            if amount <= 0:
                continue
            entries.append(
                _entry(
                    f"M2 Item Shifted to {target}",
                    quantity=amount,
                    floor=self.floor,
                    previous_value=m2_before,
                    new_value=m2_before - amount,
                    remarks=f"{amount} M2 items shifted to {target}",
                    change_reason=reason,
                    quality_status=quality_status,
                )
            )
            m2_before -= amount
        return entries


@dataclass(frozen=True)
class FinalQualityChange:
    floor: str
    previous: bool
    new: bool
    quantity: int

    def log_entries(self) -> list[dict[str, Any]]:
        return [
            _entry(
                "Final Quality Confirmed" if self.new else "Final Quality Rejected",
                quantity=self.quantity,
                floor=self.floor,
                previous_value=self.previous,
                new_value=self.new,
                remarks=f"Final quality {'confirmed' if self.new else 'rejected'}",
                change_reason="Final quality inspection",
                quality_status="Approved for Warehouse" if self.new else "Rejected",
            )
        ]


@dataclass(frozen=True)
class WriteOff:
    floor: str
    quantity: int
    written_off_total: int

    def log_entries(self) -> list[dict[str, Any]]:
        return [
            _entry(
                "Defects Written Off",
                quantity=self.quantity,
                floor=self.floor,
                previous_value=self.written_off_total - self.quantity,
                new_value=self.written_off_total,
                remarks=f"{self.quantity} M3/M4 units written off on {self.floor} floor",
                change_reason="Defect disposition",
                quality_status="Rejected",
            )
        ]


@dataclass(frozen=True)
class TransferHop:
    from_floor: str
    to_floor: str
    quantity: int
    from_completed: int
    from_transferred: int
    from_remaining: int
    to_received: int
    to_remaining: int
    good_only: bool = False
    cascade: bool = False
    quality: dict[str, Any] | None = None

    def log_entries(self) -> list[dict[str, Any]]:
        remarks = (
            f"{self.quantity} units transferred from {self.from_floor} to {self.to_floor} "
            f"({self.from_remaining} remaining on {self.from_floor})"
        )
        if self.good_only and self.quality:
            remarks += (
                f" | Quality: M1: {self.quality['m1_quantity']} (transferred), "
                f"M2: {self.quality['m2_quantity']}, M3: {self.quality['m3_quantity']}, "
                f"M4: {self.quality['m4_quantity']} (defects remain)"
            )
        return [
            _entry(
                f"Transferred to {self.to_floor}",
                quantity=self.quantity,
                from_floor=self.from_floor,
                to_floor=self.to_floor,
                previous_value=self.from_floor,
                new_value=self.to_floor,
                remarks=remarks,
                change_reason="Previous floor work transfer" if self.cascade else "Floor transfer",
                details={
                    "from_completed": self.from_completed,
                    "from_transferred": self.from_transferred,
                    "from_remaining": self.from_remaining,
                    "to_received": self.to_received,
                    "to_remaining": self.to_remaining,
                },
            )
        ]


@dataclass(frozen=True)
class FloorAdvance:
    from_floor: str
    to_floor: str

    def log_entries(self) -> list[dict[str, Any]]:
        return [
            _entry(
                "Current Floor Updated",
                from_floor=self.from_floor,
                to_floor=self.to_floor,
                previous_value=self.from_floor,
                new_value=self.to_floor,
                remarks=f"Article moved from {self.from_floor} to {self.to_floor}",
                change_reason="Floor completed",
            )
        ]


@dataclass(frozen=True)
class ProgressChange:
    previous: int
    new: int

    def log_entries(self) -> list[dict[str, Any]]:
        if self.previous == self.new:
            return []
        return [
            _entry(
                "Progress Updated",
                previous_value=self.previous,
                new_value=self.new,
                remarks=f"Progress updated to {self.new}%",
                change_reason="Progress calculation",
            )
        ]


@dataclass(frozen=True)
class StatusChange:
    previous: str
    new: str

    def log_entries(self) -> list[dict[str, Any]]:
        return [
            _entry(
                "Status Updated",
                previous_value=self.previous,
                new_value=self.new,
                remarks=f"Status changed from {self.previous} to {self.new}",
                change_reason="Production lifecycle",
            )
        ]


@dataclass(frozen=True)
class RemarksChange:
    remarks: str

    def log_entries(self) -> list[dict[str, Any]]:
        return [_entry("Remarks Updated", remarks=self.remarks)]


@dataclass(frozen=True)
class Correction:
    floor: str | None
    field: str
    previous: Any
    new: Any
    reason: str

    def describe(self) -> str:
        where = self.floor or "article"
        return f"{where}: {self.field} {self.previous} -> {self.new} ({self.reason})"


@dataclass(frozen=True)
class LedgerRepair:
    corrections: list[Correction] = field(default_factory=list)

    def log_entries(self) -> list[dict[str, Any]]:
        if not self.corrections:
            return []
        return [
            _entry(
                "Data Corruption Repaired",
                quantity=len(self.corrections),
                remarks="; ".join(c.describe() for c in self.corrections),
                change_reason="Ledger invariant repair",
                details={
                    "corrections": [
                        {
                            "floor": c.floor,
                            "field": c.field,
                            "previous": c.previous,
                            "new": c.new,
                            "reason": c.reason,
                        }
                        for c in self.corrections
                    ]
                },
            )
        ]
