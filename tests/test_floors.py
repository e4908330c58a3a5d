from __future__ import annotations

import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from knitflow.production.errors import InvalidFloor, InvalidLinkingType
from knitflow.production.floors import (
    LinkingType,
    ProductionFloor,
    floor_key,
    forwards_good_only,
    is_inspection_floor,
    next_floor,
    parse_floor,
    parse_linking_type,
    resolve_floor_order,
)


def test_hand_and_rosso_linking_use_all_nine_floors():
    for linking_type in (LinkingType.HAND_LINKING, LinkingType.ROSSO_LINKING):
        assert resolve_floor_order(linking_type) == ProductionFloor.ALL_FLOORS


def test_auto_linking_skips_linking_floor():
    order = resolve_floor_order("Auto Linking")

    assert len(order) == 8
    assert ProductionFloor.LINKING not in order
    assert order[0] == ProductionFloor.KNITTING
    assert order[1] == ProductionFloor.CHECKING
    assert order[-1] == ProductionFloor.DISPATCH


def test_unknown_linking_type_is_rejected():
    with pytest.raises(InvalidLinkingType) as excinfo:
        resolve_floor_order("Machine Linking")

    assert excinfo.value.kind == "invalid_linking_type"
    assert excinfo.value.actual == "Machine Linking"


def test_linking_type_parser_ignores_case_and_spacing():
    assert parse_linking_type("rosso linking") == LinkingType.ROSSO_LINKING
    assert parse_linking_type("AUTO_LINKING") == LinkingType.AUTO_LINKING


@pytest.mark.parametrize(
    "value",
    ["Final Checking", "final_checking", "FinalChecking", "finalChecking", "final-checking", " FINAL CHECKING "],
)
def test_parse_floor_accepts_common_spellings(value):
    assert parse_floor(value) == ProductionFloor.FINAL_CHECKING


def test_parse_floor_rejects_unknown_values():
    with pytest.raises(InvalidFloor):
        parse_floor("Packing")
    with pytest.raises(InvalidFloor):
        parse_floor(None)


def test_next_floor_follows_the_route():
    assert next_floor("Knitting", LinkingType.HAND_LINKING) == ProductionFloor.LINKING
    assert next_floor("Knitting", LinkingType.AUTO_LINKING) == ProductionFloor.CHECKING
    assert next_floor("Dispatch", LinkingType.AUTO_LINKING) is None
    assert next_floor("Linking", LinkingType.AUTO_LINKING) is None


def test_floor_keys_and_inspection_floors():
    assert floor_key("Final Checking") == "final_checking"
    assert floor_key("warehouse") == "warehouse"
    assert is_inspection_floor(ProductionFloor.CHECKING)
    assert is_inspection_floor(ProductionFloor.FINAL_CHECKING)
    assert not is_inspection_floor(ProductionFloor.KNITTING)
    assert forwards_good_only(ProductionFloor.CHECKING)
    assert not forwards_good_only(ProductionFloor.FINAL_CHECKING)
    assert not forwards_good_only(ProductionFloor.WASHING)
