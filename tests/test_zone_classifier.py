import pytest

from modules.serviceability.zone_classifier import (
    Zone,
    classify,
    describe_pincode,
    normalize_pincode,
    normalize_zone,
)
from utils.exception_handler import ValidationError


@pytest.mark.parametrize(
    "origin, destination, expected",
    [
        ("110001", "110020", Zone.WITHIN_CITY),
        ("400001", "411001", Zone.WITHIN_STATE),
        ("110001", "141001", Zone.WITHIN_REGION),
        ("110001", "560001", Zone.METRO_TO_METRO),
        ("302001", "781001", Zone.SPECIAL_ZONE),
        ("302001", "751001", Zone.REST_OF_INDIA),
    ],
)
def test_classify_lanes(origin, destination, expected):
    assert classify(origin, destination) == expected


def test_city_rule_wins_over_special():
    assert classify("781001", "781005") == Zone.WITHIN_CITY


def test_state_rule_wins_over_metro():
    # Mumbai and Pune are both metros in Maharashtra
    assert classify("400001", "411001") == Zone.WITHIN_STATE


def test_unknown_circles_never_share_a_state():
    assert classify("351001", "352001") == Zone.REST_OF_INDIA


def test_classification_is_deterministic_and_accepts_ints():
    first = classify(110001, "560001")
    assert all(classify("110001", 560001) == first for _ in range(5))


def test_district_overrides_circle_state():
    info = describe_pincode("403001")
    assert info.state == "Goa"
    assert info.region == "West"
    assert not info.is_metro


@pytest.mark.parametrize("pincode", ["12345", "1234567", "012345", "11000a", "", None, True])
def test_invalid_pincodes_are_rejected(pincode):
    with pytest.raises(ValidationError):
        normalize_pincode(pincode)


def test_classify_rejects_invalid_destination():
    with pytest.raises(ValidationError):
        classify("110001", "99")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("within city", Zone.WITHIN_CITY),
        ("WITHIN_STATE", Zone.WITHIN_STATE),
        ("  Metro   to Metro ", Zone.METRO_TO_METRO),
        ("roi", Zone.REST_OF_INDIA),
        ("North East", Zone.NORTH_EAST_SPECIAL),
        (Zone.SPECIAL_ZONE, Zone.SPECIAL_ZONE),
    ],
)
def test_zone_aliases(raw, expected):
    assert normalize_zone(raw) == expected


def test_unknown_zone_alias():
    with pytest.raises(ValidationError):
        normalize_zone("Moon")
