"""
Unit tests for barcode normalization, cleaning and format checks.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from orion_discard.core.barcodes import (
    barcodes_match,
    clean_barcode,
    normalize_barcode,
    validate_barcode_format,
)

barcode_text = st.text(alphabet="abcXYZ0189-_.", min_size=1, max_size=30)


class TestNormalizeBarcode:

    def test_trim_and_case(self):
        assert normalize_barcode("  ab-100 ") == "AB-100"

    def test_none_is_empty(self):
        assert normalize_barcode(None) == ""

    def test_numbers_become_strings(self):
        assert normalize_barcode(12345) == "12345"

    @given(barcode_text)
    def test_property_idempotent(self, value):
        """Property test: normalizing twice changes nothing"""
        assert normalize_barcode(normalize_barcode(value)) == normalize_barcode(value)


class TestBarcodesMatch:

    def test_case_and_whitespace_insensitive(self):
        assert barcodes_match(" ab-100", "AB-100 ")

    def test_empty_never_matches(self):
        assert not barcodes_match("", "")
        assert not barcodes_match(None, "  ")

    @given(barcode_text, st.sampled_from(["", " ", "  ", "\t"]))
    def test_property_padding_and_case_ignored(self, value, padding):
        """Property test: padding and letter case never affect matching"""
        assert barcodes_match(padding + value.lower() + padding, value.upper())


class TestCleanBarcode:

    def test_scanner_artifacts_removed(self):
        assert clean_barcode("ab-100\r\n") == "AB-100"
        assert clean_barcode("\tAB\t-100") == "AB-100"

    def test_none(self):
        assert clean_barcode(None) == ""


class TestValidateBarcodeFormat:

    @pytest.mark.parametrize("value", ["AB-100", "abc", "A.B_C-1", "X" * 50, "  AB1  "])
    def test_valid(self, value):
        assert validate_barcode_format(value)

    @pytest.mark.parametrize("value", [None, "", "AB", "X" * 51, "AB 100", "AB/100", "AB#1"])
    def test_invalid(self, value):
        assert not validate_barcode_format(value)
