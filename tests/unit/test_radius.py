"""Unit tests for radius matching and ordering"""

from dataclasses import dataclass
from local_yield.config import settings
from local_yield.domain.geo import distance_miles
from local_yield.domain.radius import (
    is_valid_radius,
    radius_options,
    is_within_radius,
    match_by_radius,
)


@dataclass
class Listing:
    name: str
    zip_code: str


def test_radius_ordering_nearby_far_unknown():
    """Within-radius first, then farther, unknown ZIP last"""
    entities = [
        Listing("unknown", "00000"),
        Listing("chicago", "60601"),  # ~40 miles
        Listing("cary", "60013"),  # ~5 miles
    ]

    matches = match_by_radius("60014", 25, entities)

    assert [m.entity.name for m in matches] == ["cary", "chicago", "unknown"]
    assert [m.within_radius for m in matches] == [True, False, False]
    assert matches[0].distance_miles < 10
    assert matches[1].distance_miles > 25
    assert matches[2].distance_miles is None


def test_within_radius_group_sorted_by_distance():
    entities = [Listing("elgin", "60120"), Listing("cary", "60013"), Listing("crystal_lake", "60014")]

    matches = match_by_radius("60014", 50, entities)

    distances = [m.distance_miles for m in matches]
    assert distances == sorted(distances)
    assert matches[0].entity.name == "crystal_lake"
    assert matches[0].distance_miles == 0.0


def test_stable_for_equal_distances():
    """Entities in the same ZIP keep their input order"""
    entities = [Listing(f"stall_{i}", "60013") for i in range(5)]
    matches = match_by_radius("60014", 25, entities)
    assert [m.entity.name for m in matches] == [f"stall_{i}" for i in range(5)]


def test_unknown_entities_keep_input_order():
    entities = [Listing("a", "00000"), Listing("b", ""), Listing("c", "99999")]
    matches = match_by_radius("60014", 25, entities)
    assert [m.entity.name for m in matches] == ["a", "b", "c"]
    assert all(m.distance_miles is None and not m.within_radius for m in matches)


def test_boundary_distance_is_within_radius():
    """distance == radius counts as within"""
    d = distance_miles("60014", "60601")
    matches = match_by_radius("60014", d, [Listing("loop", "60601")])
    assert matches[0].within_radius is True


def test_empty_viewer_zip_yields_unknown_distances():
    matches = match_by_radius("", 25, [Listing("cary", "60013")])
    assert matches[0].distance_miles is None
    assert matches[0].within_radius is False


def test_custom_zip_accessor():
    rows = [{"id": 1, "zip": "60601"}, {"id": 2, "zip": "60013"}]
    matches = match_by_radius("60014", 25, rows, zip_of=lambda r: r["zip"])
    assert [m.entity["id"] for m in matches] == [2, 1]


def test_is_within_radius():
    assert is_within_radius("60014", "60013", 5) is True
    assert is_within_radius("60014", "60601", 25) is False
    assert is_within_radius("60014", "00000", 150) is False


def test_radius_options():
    assert radius_options() == [5, 10, 25, 50, 100, 150]
    assert is_valid_radius(25) is True
    assert is_valid_radius(30) is False


def test_radius_options_follow_configuration(monkeypatch):
    monkeypatch.setattr(settings, "radius_options_miles", [3, 30])
    assert radius_options() == [3, 30]
    assert is_valid_radius(30) is True
    assert is_valid_radius(25) is False
