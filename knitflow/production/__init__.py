from .changes import Correction
from .errors import ArticleNotFound, ProductionError
from .floors import LinkingType, ProductionFloor, parse_floor, resolve_floor_order
from .ledger import (
    ArticleStatus,
    FloorLedger,
    LedgerViolation,
    ProductionArticle,
    RepairStatus,
    find_violations,
)
from .progress import floor_status, floor_statuses, recompute_progress, refresh_status
from .quality import (
    QualityUpdate,
    apply_quality_categories,
    confirm_final_quality,
    shift_m2_items,
    write_off_defects,
)
from .quantities import apply_completed_quantity, apply_knitting_defects
from .repair import repair_ledgers
from .transfer import run_transfer_pass, transfer_forward

__all__ = [
    "ArticleNotFound",
    "ArticleStatus",
    "Correction",
    "FloorLedger",
    "LedgerViolation",
    "LinkingType",
    "ProductionArticle",
    "ProductionError",
    "ProductionFloor",
    "QualityUpdate",
    "RepairStatus",
    "apply_completed_quantity",
    "apply_knitting_defects",
    "apply_quality_categories",
    "confirm_final_quality",
    "find_violations",
    "floor_status",
    "floor_statuses",
    "parse_floor",
    "recompute_progress",
    "refresh_status",
    "repair_ledgers",
    "resolve_floor_order",
    "run_transfer_pass",
    "shift_m2_items",
    "transfer_forward",
    "write_off_defects",
]
