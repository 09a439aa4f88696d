"""Unit tests for ZIP lookup and distance"""

import pytest
from local_yield.config import settings
from local_yield.domain.geo import (
    distance_miles,
    haversine_miles,
    lookup_zip,
    normalize_zip,
    validate_zip,
)
from local_yield.domain.radius import match_by_radius


def test_normalize_zip_trims_and_truncates():
    """ZIP+4 and padded input normalize to the 5-digit prefix"""
    assert normalize_zip(" 60014 ") == "60014"
    assert normalize_zip("60014-1234") == "60014"
    assert normalize_zip("6001") is None
    assert normalize_zip("abcde") is None
    assert normalize_zip("") is None


def test_validate_zip_is_strict():
    assert validate_zip("60014") is True
    assert validate_zip(" 60014") is True
    assert validate_zip("60014-1234") is False
    assert validate_zip("6001") is False


def test_lookup_zip_known():
    point = lookup_zip("60014")
    assert point is not None
    assert point.zip == "60014"
    assert 42.0 < point.lat < 42.5
    assert -88.5 < point.lng < -88.0


@pytest.mark.parametrize("zip_code", ["00000", "not-a-zip", "", "123", None])
def test_lookup_zip_unknown_or_malformed_returns_none(zip_code):
    """Malformed input resolves to not-found and never raises"""
    assert lookup_zip(zip_code) is None


def test_haversine_zero_distance():
    assert haversine_miles(42.0, -88.0, 42.0, -88.0) == 0.0


def test_haversine_one_degree_latitude():
    """One degree of latitude is roughly 69 statute miles"""
    assert 68.5 < haversine_miles(41.0, -88.0, 42.0, -88.0) < 69.5


def test_distance_miles_rounded_to_one_decimal():
    d = distance_miles("60014", "60601")
    assert d is not None
    assert d == round(d, 1)
    assert 35 < d < 50  # Crystal Lake to the Chicago Loop


def test_distance_miles_unknown_zip():
    assert distance_miles("60014", "00000") is None
    assert distance_miles("bogus", "60014") is None


def test_distance_is_symmetric():
    zips = ["60014", "60013", "60601", "53703", "10001", "94103", "99501"]
    for a in zips:
        for b in zips:
            assert distance_miles(a, b) == distance_miles(b, a)


@pytest.fixture
def us_zips(monkeypatch):
    """Resolve against the full US dataset instead of the pinned table"""
    monkeypatch.setattr(settings, "zip_table_path", None)


def test_full_dataset_resolves_zips_nationwide(us_zips):
    beverly_hills = lookup_zip("90210")
    austin = lookup_zip("78701")
    assert beverly_hills is not None and 33.9 < beverly_hills.lat < 34.2
    assert austin is not None and 30.1 < austin.lat < 30.5
    assert lookup_zip("00000") is None


def test_full_dataset_distance_between_neighbouring_zips(us_zips):
    """Beverly Hills to Westwood is a few miles"""
    d = distance_miles("90210", "90024")
    assert d is not None
    assert 1 < d < 8


def test_full_dataset_radius_match(us_zips):
    matches = match_by_radius("90210", 25, [{"zip": "90024"}, {"zip": "78701"}], zip_of=lambda e: e["zip"])
    assert [m.entity["zip"] for m in matches] == ["90024", "78701"]
    assert [m.within_radius for m in matches] == [True, False]
    assert matches[1].distance_miles > 1000


def test_override_table_replaces_dataset():
    """With zip_table_path set only the table's ZIPs resolve"""
    assert lookup_zip("60014") is not None
    assert lookup_zip("90210") is None
