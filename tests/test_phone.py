"""
Tests for phone normalization and mobile-number rules
"""
import pytest

from phoneauth.utils.phone import (
    normalize_phone,
    validate_phone,
    get_phone_last4,
    parse_phone,
)


@pytest.mark.parametrize("raw", ["9820012345", "+919820012345", "+91 98200 12345", "098200-12345"])
def test_normalize_to_e164(raw):
    assert normalize_phone(raw) == "+919820012345"


def test_other_regions_keep_their_country_code():
    # Same national digits, different countries, different keys
    assert normalize_phone("+919172345678") == "+919172345678"
    assert normalize_phone("+19172345678") == "+19172345678"


@pytest.mark.parametrize("raw", ["+15550001111", "+1 (555) 000-1111", "+447700900123"])
def test_possible_numbers_outside_india_are_accepted(raw):
    assert validate_phone(raw) is True
    assert normalize_phone(raw).startswith("+")


def test_indian_rules_apply_with_explicit_country_code():
    with pytest.raises(ValueError):
        normalize_phone("+915820012345")
    with pytest.raises(ValueError):
        normalize_phone("+919999999999")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "not a phone",
        "12345",
        "+1 555",       # too short for its region
        "9999999999",   # repeated digit
        "9876543210",   # descending run
        "5820012345",   # not a mobile prefix
    ],
)
def test_rejects_invalid_numbers(raw):
    with pytest.raises(ValueError):
        normalize_phone(raw)
    assert validate_phone(raw) is False


def test_last4_and_parse():
    assert get_phone_last4("+919820012345") == "2345"
    assert get_phone_last4("12") == "12"
    e164, national, last4 = parse_phone("98200 12345")
    assert (e164, national, last4) == ("+919820012345", "9820012345", "2345")
