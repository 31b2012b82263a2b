"""Tests for phone normalization and search variants."""

from __future__ import annotations

import pytest

from app.services.phone import digits_only, mask_phone, normalize_phone, phone_variants

pytestmark = pytest.mark.unit


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        [
            "9123 4567",
            "9123-4567",
            "91234567",
            "+852 9123 4567",
            "+852-9123-4567",
            "0085291234567",
            "00852 9123 4567",
            "(852) 9123 4567",
            "852 9123 4567",
            "  +85291234567  ",
        ],
    )
    def test_formatting_variants_share_one_canonical_form(self, raw: str):
        assert normalize_phone(raw) == "+85291234567"

    def test_international_number_keeps_its_country_code(self):
        assert normalize_phone("+1 (415) 555-2671") == "+14155552671"
        assert normalize_phone("001 415 555 2671") == "+14155552671"

    def test_local_number_uses_given_home_code(self):
        assert normalize_phone("415 555 2671", country_code="+1", local_length=10) == "+14155552671"

    def test_plus_prefixed_local_length_number_is_not_prefixed_again(self):
        # "+" means the caller already supplied a country code
        assert normalize_phone("+91234567") != "+85291234567"

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "+", "()-"])
    def test_empty_or_digitless_input_yields_empty(self, raw):
        assert normalize_phone(raw) == ""

    def test_never_raises_on_garbage(self):
        assert normalize_phone("+999 12") == "+99912"


class TestPhoneVariants:
    def test_local_number_variants(self):
        assert phone_variants("9123 4567") == ["+85291234567", "85291234567", "91234567"]

    def test_international_number_variants_are_deduplicated(self):
        assert phone_variants("+1 415 555 2671") == ["+14155552671", "14155552671"]

    def test_empty_input_has_no_variants(self):
        assert phone_variants("") == []
        assert phone_variants(None) == []

    def test_canonical_form_comes_first(self):
        variants = phone_variants("0085291234567")
        assert variants[0] == "+85291234567"
        assert len(variants) == len(set(variants))


class TestHelpers:
    def test_digits_only(self):
        assert digits_only("+852 (9123) 45-67") == "85291234567"
        assert digits_only(None) == ""

    def test_mask_phone_keeps_last_four(self):
        assert mask_phone("+852 9123 4567") == "***4567"
        assert mask_phone("12") == "***"
