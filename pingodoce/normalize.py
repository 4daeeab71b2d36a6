"""Locale-tolerant decimal, date and text normalization.

The retailer API mixes native JSON numbers with Portuguese-formatted strings
("1,29"), and dates arrive either as ISO-8601 or in day-first local formats.
Everything here is lenient: unparsable input becomes None instead of raising.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from .errors import ParseError

_CURRENCY_MARKERS = re.compile(r"(?i)eur|€|\s")
_NUMBER_RE = re.compile(r"^[-+]?\d+(?:\.\d+)?$")

# Day-first and compact layouts seen in exported receipts
_DATE_FORMATS: list[str] = [
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%Y%m%d%H%M%S",
    "%Y%m%d",
]


def parse_decimal(text: str) -> float:
    """Parse a decimal string with either comma or dot as separator.

    Thousands separators are accepted when both separators are present
    ("1.234,56" and "1,234.56" both give 1234.56); the rightmost one is the
    decimal separator.

    Raises:
        ParseError: If the text is not a number.
    """
    cleaned = _CURRENCY_MARKERS.sub("", str(text))
    if not cleaned:
        raise ParseError(f"empty decimal: {text!r}")

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif cleaned.count(",") == 1:
        cleaned = cleaned.replace(",", ".")
    elif cleaned.count(",") > 1:
        cleaned = cleaned.replace(",", "")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")

    if not _NUMBER_RE.match(cleaned):
        raise ParseError(f"not a decimal: {text!r}")
    return float(cleaned)


def to_float(value: object) -> float | None:
    """Convert a number or locale-formatted string to float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return parse_decimal(str(value))
    except ParseError:
        return None


def to_money(value: object) -> float | None:
    """Like ``to_float`` but rounded to two decimal places."""
    amount = to_float(value)
    return round(amount, 2) if amount is not None else None


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties away from zero: 0.5 -> 1, -2.5 -> -3, 0.25 -> 0.3.

    The decimal is taken from the shortest repr of ``value`` so that
    ``0.15`` rounds as written rather than as its binary approximation.
    """
    exponent = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def to_int(value: object) -> int | None:
    amount = to_float(value)
    return int(amount) if amount is not None else None


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO-8601 or day-first date string.

    Offsets are preserved as given; naive input stays naive.
    Returns None for anything unparsable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    # Python < 3.11 rejects fractional seconds that are not 3 or 6 digits
    m = re.match(r"^(\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})\.\d+(.*)$", iso)
    if m:
        try:
            return datetime.fromisoformat(m.group(1) + m.group(2))
        except ValueError:
            pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def isoformat(value: object) -> str | None:
    """Normalize a date value to the ISO string stored in the database."""
    parsed = parse_datetime(value)
    return parsed.isoformat() if parsed is not None else None


def fold_text(text: str | None) -> str:
    """Return an accent-stripped, case-folded form of ``text``.

    "GRÃO", "Grão" and "grao" all fold to "grao".
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()
