"""Tests for phone number normalisation."""

import pytest

from storefront.core.phone import is_valid_phone, normalize_phone


@pytest.mark.parametrize(
    "raw",
    [
        "09120000000",
        " 0912 000 0000 ",
        "0912-000-0000",
        "+989120000000",
        "+98 912 000 0000",
        "+98 0912 000 0000",
        "0098 0912 000 0000",
        "00989120000000",
        "989120000000",
        "9120000000",
        "۰۹۱۲۰۰۰۰۰۰۰",
        "٠٩١٢٠٠٠٠٠٠٠",
    ],
)
def test_normalize_iranian_numbers(raw):
    assert normalize_phone(raw) == "09120000000"


def test_foreign_number_stays_international():
    assert normalize_phone("+44 20 7946 0958") == "+442079460958"


@pytest.mark.parametrize("raw", [None, "", "   ", "abc"])
def test_unusable_input(raw):
    assert normalize_phone(raw) == ""


def test_is_valid_phone():
    assert is_valid_phone("09120000000")
    assert is_valid_phone("+442079460958")
    assert not is_valid_phone("0912")
    assert not is_valid_phone("")
