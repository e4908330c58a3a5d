"""Production floor vocabulary and the floor sequence resolver."""

from __future__ import annotations

import re

from knitflow.production.errors import InvalidFloor, InvalidLinkingType


class ProductionFloor:
    KNITTING = "Knitting"
    LINKING = "Linking"
    CHECKING = "Checking"
    WASHING = "Washing"
    BOARDING = "Boarding"
    FINAL_CHECKING = "Final Checking"
    BRANDING = "Branding"
    WAREHOUSE = "Warehouse"
    DISPATCH = "Dispatch"

    ALL_FLOORS = [
        KNITTING,
        LINKING,
        CHECKING,
        WASHING,
        BOARDING,
        FINAL_CHECKING,
        BRANDING,
        WAREHOUSE,
        DISPATCH,
    ]
    INSPECTION_FLOORS = {CHECKING, FINAL_CHECKING}
    GOOD_ONLY_TRANSFER_FLOORS = {CHECKING}
    KEYS = {
        KNITTING: "knitting",
        LINKING: "linking",
        CHECKING: "checking",
        WASHING: "washing",
        BOARDING: "boarding",
        FINAL_CHECKING: "final_checking",
        BRANDING: "branding",
        WAREHOUSE: "warehouse",
        DISPATCH: "dispatch",
    }


class LinkingType:
    AUTO_LINKING = "Auto Linking"
    HAND_LINKING = "Hand Linking"
    ROSSO_LINKING = "Rosso Linking"

    ALL_TYPES = [AUTO_LINKING, HAND_LINKING, ROSSO_LINKING]


FULL_SEQUENCE = tuple(ProductionFloor.ALL_FLOORS)
AUTO_LINKING_SEQUENCE = tuple(
    floor for floor in ProductionFloor.ALL_FLOORS if floor != ProductionFloor.LINKING
)


def _token(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.strip().lower())


_FLOOR_BY_TOKEN = {
    _token(alias): floor
    for floor, key in ProductionFloor.KEYS.items()
    for alias in (floor, key)
}
_LINKING_BY_TOKEN = {_token(value): value for value in LinkingType.ALL_TYPES}


def parse_floor(value) -> str:
    """Return the canonical floor label for ``value``.

    Accepts the display label (``"Final Checking"``), the storage key
    (``"final_checking"``) and the spellings callers tend to send
    (``"FinalChecking"``, ``"final-checking"``).
    """

    if isinstance(value, str):
        floor = _FLOOR_BY_TOKEN.get(_token(value))
        if floor is not None:
            return floor
    raise InvalidFloor(f"Unknown production floor: {value!r}.", actual=value)


def parse_linking_type(value) -> str:
    if isinstance(value, str):
        linking_type = _LINKING_BY_TOKEN.get(_token(value))
        if linking_type is not None:
            return linking_type
    raise InvalidLinkingType(f"Unknown linking type: {value!r}.", actual=value)


def resolve_floor_order(linking_type) -> list[str]:
    """Ordered floors an article of ``linking_type`` passes through.

    Auto linked articles come off the knitting machine already joined, so they
    skip the Linking floor.
    """

    linking_type = parse_linking_type(linking_type)
    if linking_type == LinkingType.AUTO_LINKING:
        return list(AUTO_LINKING_SEQUENCE)
    return list(FULL_SEQUENCE)


def next_floor(floor: str, linking_type) -> str | None:
    order = resolve_floor_order(linking_type)
    floor = parse_floor(floor)
    if floor not in order:
        return None
    index = order.index(floor)
    if index == len(order) - 1:
        return None
    return order[index + 1]


def floor_key(floor: str) -> str:
    return ProductionFloor.KEYS[parse_floor(floor)]


def is_inspection_floor(floor: str) -> bool:
    return floor in ProductionFloor.INSPECTION_FLOORS


def forwards_good_only(floor: str) -> bool:
    """Only M1 units leave this floor, and only once inspection is complete."""

    return floor in ProductionFloor.GOOD_ONLY_TRANSFER_FLOORS
