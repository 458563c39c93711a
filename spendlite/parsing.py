"""Total parsers for the two fields every bank export disagrees on.

Neither helper raises. Unparseable dates become ``None`` (the record is kept
but excluded from month grouping) and unparseable amounts become ``0.0``
(callers treat zero as "unparseable or zero" and usually drop the row).
"""

from __future__ import annotations

import math
import re
from datetime import date

_YEAR_FIRST_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_TIME_PREFIX_RE = re.compile(r"^\d{1,2}:\d{2}\s*(am|pm)\s*", re.IGNORECASE)
_LONG_FORM_RE = re.compile(
    r"^(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)?\s*(\d{1,2})\s+"
    r"(January|February|March|April|May|June|July|August|September|October|November|December)"
    r",?\s+(\d{4})",
    re.IGNORECASE,
)

MONTHS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)
_MONTH_INDEX = {name: i + 1 for i, name in enumerate(MONTHS)}

_AMOUNT_STRIP_RE = re.compile(r"[^\d\-,.]")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str | None) -> date | None:
    """Parse a bank date string into a :class:`datetime.date`.

    Formats are tried in a fixed order and the first one that matches wins:

    1. ``YYYY-MM-DD`` / ``YYYY/MM/DD``
    2. ``DD-MM-YYYY`` / ``DD/MM/YYYY`` (day first)
    3. ``[Weekday] D Month, YYYY`` with a full English month name, after
       stripping an optional ``HH:MM am/pm`` prefix.

    A string that matches a shape but names an impossible day (``31/02/2025``)
    yields ``None``.
    """

    if not text:
        return None
    s = str(text).strip()

    m = _YEAR_FIRST_RE.match(s)
    if m:
        return _safe_date(int(m[1]), int(m[2]), int(m[3]))

    m = _DAY_FIRST_RE.match(s)
    if m:
        return _safe_date(int(m[3]), int(m[2]), int(m[1]))

    s2 = _TIME_PREFIX_RE.sub("", s, count=1)
    m = _LONG_FORM_RE.match(s2)
    if m:
        month = _MONTH_INDEX.get(m[2].lower())
        if month is not None:
            return _safe_date(int(m[3]), month, int(m[1]))
    return None


def parse_amount(text: str | float | int | None) -> float:
    """Convert a currency-formatted string such as ``"$1,234.56"`` to a float.

    Every character other than digits, ``-``, ``,`` and ``.`` is dropped, then
    commas are removed. Empty, non-numeric and non-finite inputs return ``0.0``.
    """

    if text is None:
        return 0.0
    s = _AMOUNT_STRIP_RE.sub("", str(text)).replace(",", "")
    if not s:
        return 0.0
    try:
        value = float(s)
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def month_key(d: date) -> str:
    """Return the ``YYYY-MM`` grouping key for ``d``."""

    return f"{d.year:04d}-{d.month:02d}"


def format_month_label(key: str | None) -> str:
    """Render a ``YYYY-MM`` key as ``"July 2025"``; other labels pass through."""

    if not key:
        return "All months"
    m = re.match(r"^(\d{4})-(\d{2})$", key)
    if not m:
        return str(key)
    month = int(m[2])
    if not 1 <= month <= 12:
        return str(key)
    return f"{MONTHS[month - 1].capitalize()} {m[1]}"


__all__ = ["parse_date", "parse_amount", "month_key", "format_month_label", "MONTHS"]
