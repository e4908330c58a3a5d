"""Typed failures raised by the production ledger operations."""

from __future__ import annotations

from typing import Any


class ProductionError(ValueError):
    """Base class for rejected ledger operations.

    ``kind`` is the machine readable identifier surfaced to API callers and
    ``category`` groups failures into validation, state and lookup problems.
    The article is never modified when one of these is raised.
    """

    kind = "production_error"
    category = "validation"

    def __init__(
        self,
        message: str,
        *,
        floor: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.floor = floor
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "category": self.category,
            "message": self.message,
        }
        if self.floor is not None:
            payload["floor"] = self.floor
        if self.expected is not None:
            payload["expected"] = self.expected
        if self.actual is not None:
            payload["actual"] = self.actual
        return payload


class InvalidFloor(ProductionError):
    kind = "invalid_floor"


class InvalidLinkingType(ProductionError):
    kind = "invalid_linking_type"


class InvalidQuantity(ProductionError):
    kind = "invalid_quantity"


class QuantityExceedsReceived(ProductionError):
    kind = "quantity_exceeds_received"


class InvalidFloorForQuality(ProductionError):
    kind = "invalid_floor_for_quality"


class QualityExceedsCapacity(ProductionError):
    kind = "quality_exceeds_capacity"


class QualityBelowCommitted(ProductionError):
    kind = "quality_below_committed"


class InvalidRepairStatus(ProductionError):
    kind = "invalid_repair_status"


class ShiftMismatch(ProductionError):
    kind = "shift_mismatch"


class TransferExceedsAvailable(ProductionError):
    kind = "transfer_exceeds_available"


class NoNextFloor(ProductionError):
    kind = "no_next_floor"
    category = "state"


class NothingToTransfer(ProductionError):
    kind = "nothing_to_transfer"
    category = "state"


class QualityInspectionIncomplete(ProductionError):
    kind = "quality_inspection_incomplete"
    category = "state"


class NothingToWriteOff(ProductionError):
    kind = "nothing_to_write_off"
    category = "state"


class ArticleNotFound(ProductionError):
    kind = "article_not_found"
    category = "not_found"
