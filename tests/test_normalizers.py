"""
tests/test_normalizers.py

Unit tests for the value normalizers. Pure functions, no I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from station_etl.services.normalizers import (
    as_text,
    clean_phone,
    normalize_plate_number,
    normalize_status,
    parse_bool,
    parse_date,
    parse_ddmmyyyy,
    parse_decimal,
    parse_int,
    truncate,
)


# ---------------------------------------------------------------------------
# Phones and plates
# ---------------------------------------------------------------------------


class TestCleanPhone:
    def test_strips_everything_but_digits_and_plus(self) -> None:
        assert clean_phone("+84 (909) 123-456") == "+84909123456"

    @pytest.mark.parametrize("value", [None, "", " - "])
    def test_empty_gives_none(self, value) -> None:
        assert clean_phone(value) is None

    def test_numbers_are_accepted(self) -> None:
        assert clean_phone(909123456) == "909123456"


class TestNormalizePlateNumber:
    def test_dash_dot_and_spaces_removed(self) -> None:
        assert normalize_plate_number(" 51b-123.45 ") == "51B12345"

    def test_same_plate_written_two_ways_matches(self) -> None:
        assert normalize_plate_number("51B-12345") == normalize_plate_number("51b 12345")

    def test_none_gives_empty_string(self) -> None:
        assert normalize_plate_number(None) == ""


# ---------------------------------------------------------------------------
# Booleans, numbers, dates
# ---------------------------------------------------------------------------


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "TRUE", "1", 1, 2.5, True])
    def test_truthy(self, value) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "yes", "0", 0, False])
    def test_falsy(self, value) -> None:
        assert parse_bool(value) is False

    def test_missing_uses_default(self) -> None:
        assert parse_bool(None) is True
        assert parse_bool(None, default=False) is False


class TestParseNumbers:
    def test_int_from_float_string(self) -> None:
        assert parse_int("40.0") == 40

    @pytest.mark.parametrize("value", [None, "", "forty", True])
    def test_int_failure_gives_none(self, value) -> None:
        assert parse_int(value) is None

    def test_decimal_keeps_precision(self) -> None:
        assert parse_decimal("150000.50") == Decimal("150000.50")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "abc", None])
    def test_decimal_rejects_non_finite_and_garbage(self, value) -> None:
        assert parse_decimal(value) is None


class TestParseDate:
    def test_iso_string(self) -> None:
        parsed = parse_date("2024-05-01T06:30:00Z")
        assert parsed == datetime(2024, 5, 1, 6, 30, tzinfo=timezone.utc)

    def test_numbers_are_epoch_milliseconds(self) -> None:
        assert parse_date(1714545000000) == datetime(2024, 5, 1, 6, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", True])
    def test_unparseable_gives_none(self, value) -> None:
        assert parse_date(value) is None

    @pytest.mark.parametrize("value", ["15", "2024", "May 2024", "2024-05"])
    def test_partial_date_gives_none(self, value) -> None:
        assert parse_date(value) is None

    def test_date_only_string_is_midnight(self) -> None:
        assert parse_date("2024-05-01") == datetime(2024, 5, 1)


class TestParseDdMmYyyy:
    def test_converts_to_iso(self) -> None:
        assert parse_ddmmyyyy("1/2/2023") == "2023-02-01"

    @pytest.mark.parametrize("value", ["2023-02-01", "01/02", "aa/bb/cccc", None, ""])
    def test_other_shapes_give_none(self, value) -> None:
        assert parse_ddmmyyyy(value) is None


# ---------------------------------------------------------------------------
# Status, text, truncation
# ---------------------------------------------------------------------------


class TestNormalizeStatus:
    def test_legacy_uppercase_is_mapped(self) -> None:
        assert normalize_status("PERMIT_ISSUED") == "permit_issued"

    def test_unknown_status_is_lowercased(self) -> None:
        assert normalize_status("Departed") == "departed"

    def test_missing_uses_default(self) -> None:
        assert normalize_status(None, "entered") == "entered"


class TestTextHelpers:
    def test_truncate_reports_the_cut(self) -> None:
        assert truncate("abcdef", 4) == ("abcd", True)
        assert truncate("abc", 4) == ("abc", False)
        assert truncate(12345, 2) == (12345, False)

    def test_as_text(self) -> None:
        assert as_text("  ") is None
        assert as_text(40) == "40"
        assert as_text({"nested": True}) is None
