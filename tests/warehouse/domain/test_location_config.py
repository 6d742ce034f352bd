"""Tests for the location alphabet and shelf ranges."""

import pytest
from warehouse.config import (
    AWAITING_LOCATION,
    LOCATION_CODES,
    enforce_location_availability,
    is_known_location,
    is_valid_shelf,
    max_shelf_number,
)


class TestLocationAlphabet:
    def test_includes_edges(self):
        for code in ("A1", "A2", "B1", "B2", "C1", "U5", "V1", "Z5", "AA", "FG"):
            assert code in LOCATION_CODES

    def test_excludes_gaps(self):
        for code in ("A3", "B3", "C6", "Z6", "O6", "P8", "AH", "GA"):
            assert code not in LOCATION_CODES

    def test_alphabet_size(self):
        # 4 two-bay codes, 24 five-bay letters and 42 lettered aisles
        assert len(LOCATION_CODES) == 4 + 24 * 5 + 42

    def test_codes_are_unique(self):
        assert len(LOCATION_CODES) == len(set(LOCATION_CODES))

    def test_sentinel_is_known(self):
        assert is_known_location(AWAITING_LOCATION)
        assert not is_known_location(None)


class TestShelfRanges:
    @pytest.mark.parametrize("code", ["O1", "O5", "P3"])
    def test_extended_locations_have_eight_shelves(self, code):
        assert max_shelf_number(code) == 7

    def test_regular_locations_have_six_shelves(self):
        assert max_shelf_number("C3") == 5

    @pytest.mark.parametrize(
        "code,shelf,valid",
        [
            ("C3", "0", True),
            ("C3", "5", True),
            ("C3", "6", False),
            ("O3", "7", True),
            ("O3", "8", False),
            ("FG", "5", True),
            ("FG", "6", False),
            ("C3", "-1", False),
            ("C3", "x", False),
            ("C3", None, False),
            (AWAITING_LOCATION, None, True),
            (AWAITING_LOCATION, "anything", True),
        ],
    )
    def test_is_valid_shelf(self, code, shelf, valid):
        assert is_valid_shelf(code, shelf) is valid


class TestEnforcementFlag:
    def test_off_by_default(self):
        assert enforce_location_availability() is False

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_truthy_values_enable(self, monkeypatch, value):
        monkeypatch.setenv("WAREHOUSE_ENFORCE_LOCATION_AVAILABILITY", value)
        assert enforce_location_availability() is True
