"""Value normalizers for loosely-typed legacy fields.

Every function here is pure and total: bad input yields the documented
fallback (usually None), never an exception.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from dateutil import parser as date_parser

_PHONE_STRIP_RE = re.compile(r"[^\d+]")
_PLATE_STRIP_RE = re.compile(r"[\s.\-]")

# Two fill-in defaults that differ in year, month and day. A string that parses
# to different dates under each was missing one of those parts.
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

# Legacy status spellings -> canonical lowercase status
STATUS_MAPPING = {
    "ENTERED": "entered",
    "entered": "entered",
    "PERMIT_ISSUED": "permit_issued",
    "permit_issued": "permit_issued",
    "BOARDING": "boarding",
    "boarding": "boarding",
    "EXITED": "exited",
    "exited": "exited",
    "CANCELLED": "cancelled",
    "cancelled": "cancelled",
    "ACTIVE": "active",
    "active": "active",
    "INACTIVE": "inactive",
    "inactive": "inactive",
}


def clean_phone(value: Any) -> Optional[str]:
    """Strip a phone number down to digits and `+`."""
    if value is None or value == "":
        return None
    phone = _PHONE_STRIP_RE.sub("", str(value))
    return phone or None


def parse_bool(value: Any, default: bool = True) -> bool:
    """
    Coerce a legacy boolean.

    Strings are true only for "true" (any case) or "1"; numbers are true
    when non-zero. Anything else, including None, gives `default`.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true" or value == "1"
    if isinstance(value, (int, float)):
        return value != 0
    return default


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date permissively.

    Numbers are epoch milliseconds, as the legacy clients wrote them.
    Unparseable input, or a string missing its year, month or day, gives None.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value

    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        first, second = (date_parser.parse(str(value), default=d) for d in _DATE_DEFAULTS)
    except (ValueError, OverflowError, OSError):
        return None
    if first.date() != second.date():
        return None
    return first


def parse_int(value: Any) -> Optional[int]:
    """Coerce to int, giving None on failure."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return None


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Coerce to Decimal, giving None on failure or non-finite input."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def is_numeric(value: Any) -> bool:
    return parse_decimal(value) is not None


def normalize_status(value: Any, default: str = "unknown") -> str:
    """Canonicalize a status string, falling back to its lowercase form."""
    if value is None or value == "":
        return default
    status = str(value)
    return STATUS_MAPPING.get(status, status.lower())


def truncate(value: Any, limit: int) -> Tuple[Any, bool]:
    """
    Cut a string to `limit` characters.

    Returns the (possibly shortened) value and whether it was shortened.
    Non-strings pass through untouched.
    """
    if not isinstance(value, str) or len(value) <= limit:
        return value, False
    return value[:limit], True


def normalize_plate_number(value: Any) -> str:
    """Trim, upper-case and drop spaces, dots and dashes: "51b-123.45" -> "51B12345"."""
    if value is None:
        return ""
    return _PLATE_STRIP_RE.sub("", str(value).strip().upper())


def parse_ddmmyyyy(value: Any) -> Optional[str]:
    """Convert a DD/MM/YYYY string into YYYY-MM-DD. Anything else gives None."""
    if not isinstance(value, str) or not value.strip():
        return None
    parts = value.strip().split("/")
    if len(parts) != 3:
        return None
    day, month, year = (p.strip() for p in parts)
    if not (day.isdigit() and month.isdigit() and year.isdigit()):
        return None
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def as_text(value: Any) -> Optional[str]:
    """Stringify a scalar, mapping None and blank strings to None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (dict, list)):
        return None
    return str(value)
