"""Tests for decimal, date and text normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from pingodoce.errors import ParseError
from pingodoce.normalize import (
    fold_text,
    isoformat,
    parse_datetime,
    parse_decimal,
    round_half_up,
    to_float,
    to_int,
    to_money,
)


class TestToFloat:
    @pytest.mark.parametrize("value", ["1,29", 1.29, "1.29"])
    def test_comma_dot_and_native_agree(self, value):
        """Comma decimals, dot decimals and floats all give 1.29."""
        assert to_float(value) == 1.29

    def test_int(self):
        """Integers become floats."""
        assert to_float(3) == 3.0
        assert isinstance(to_float(3), float)

    def test_none_and_bool(self):
        """None and booleans are not numbers."""
        assert to_float(None) is None
        assert to_float(True) is None

    def test_garbage_is_none(self):
        """Unparsable text becomes None instead of raising."""
        assert to_float("abc") is None
        assert to_float("") is None
        assert to_float("1,2,3x") is None

    def test_currency_and_spaces(self):
        """Currency markers and whitespace are ignored."""
        assert to_float(" 2,49 € ") == 2.49
        assert to_float("EUR 10.5") == 10.5

    def test_thousands_separators(self):
        """Both European and English thousands layouts are accepted."""
        assert to_float("1.234,56") == 1234.56
        assert to_float("1,234.56") == 1234.56

    def test_negative(self):
        """Discount amounts may be negative."""
        assert to_float("-0,50") == -0.5


def test_parse_decimal_raises_parse_error():
    """The strict parser reports bad input."""
    with pytest.raises(ParseError):
        parse_decimal("twelve")


def test_to_money_rounds_to_cents():
    """Money values are rounded to two decimals."""
    assert to_money("45,499") == 45.5
    assert to_money(None) is None


def test_to_int():
    """Integer conversion truncates and tolerates strings."""
    assert to_int("3") == 3
    assert to_int("2,0") == 2
    assert to_int(None) is None


class TestParseDatetime:
    def test_iso_with_offset(self):
        """Offsets are kept as given."""
        parsed = parse_datetime("2024-03-15T10:30:00+01:00")
        assert parsed == datetime(
            2024, 3, 15, 10, 30, tzinfo=timezone(timedelta(hours=1))
        )

    def test_iso_zulu(self):
        """A trailing Z means UTC."""
        parsed = parse_datetime("2024-03-15T10:30:00Z")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)

    def test_iso_fractional_seconds(self):
        """Odd-length fractional seconds still parse."""
        parsed = parse_datetime("2024-03-15T10:30:00.1234567")
        assert parsed.replace(microsecond=0) == datetime(2024, 3, 15, 10, 30)

    def test_day_first(self):
        """Portuguese day-first dates parse."""
        assert parse_datetime("15/03/2024") == datetime(2024, 3, 15)
        assert parse_datetime("15/03/2024 18:05") == datetime(2024, 3, 15, 18, 5)
        assert parse_datetime("15-03-2024") == datetime(2024, 3, 15)

    def test_compact(self):
        """Compact YYYYMMDD dates parse."""
        assert parse_datetime("20240315") == datetime(2024, 3, 15)

    def test_date_object(self):
        """Plain dates become midnight datetimes."""
        assert parse_datetime(date(2024, 3, 15)) == datetime(2024, 3, 15)

    def test_invalid_is_none(self):
        """Unparsable values become None."""
        assert parse_datetime("not a date") is None
        assert parse_datetime("") is None
        assert parse_datetime(None) is None
        assert parse_datetime("31/02/2024") is None


def test_isoformat():
    """Dates are stored as ISO strings."""
    assert isoformat("15/03/2024") == "2024-03-15T00:00:00"
    assert isoformat("garbage") is None


def test_fold_text_strips_accents_and_case():
    """Accented upper and lower case forms fold to the same text."""
    assert fold_text("GRÃO") == "grao"
    assert fold_text("Grão") == fold_text("grao")
    assert fold_text("Maçã") == "maca"
    assert fold_text(None) == ""


def test_round_half_up():
    """Ties round away from zero, at any precision."""
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(-0.5) == -1
    assert round_half_up(14.25) == 14
    assert round_half_up(0.15, 1) == 0.2
    assert round_half_up(2.675, 2) == 2.68
