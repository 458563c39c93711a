"""Adapter for bank CSV exports (header row + data rows).

Column detection
----------------
Banks rename and reorder columns, so each field is located by searching the
header names case-insensitively for a known label, falling back to a fixed
position when nothing matches:

- date: ``Effective Date`` > any header containing ``date`` > column 2
- debit amount: ``Debit Amount`` > ``Debit`` / ``Amount`` > column 5
- description: ``Long Description`` > ``Description`` > column 9

Rows without a date and description, or whose amount parses to zero, are
placeholders (pending / zero-balance lines) and are dropped silently.
"""

from __future__ import annotations

import csv
import math
import re
from collections.abc import Mapping, Sequence
from io import StringIO

from ..logging_setup import get_logger
from ..models import Transaction
from ..parsing import parse_amount, parse_date

logger = get_logger("spendlite.ingest.tabular")

DATE_FALLBACK_INDEX = 2
DEBIT_FALLBACK_INDEX = 5
DESCRIPTION_FALLBACK_INDEX = 9

# Ordered from most to least specific; the first pattern with a hit wins.
_DATE_PATTERNS = (re.compile(r"effective date", re.I), re.compile(r"date", re.I))
_DEBIT_PATTERNS = (re.compile(r"debit amount", re.I), re.compile(r"^(debit|amount)$", re.I))
_DESC_PATTERNS = (re.compile(r"long description", re.I), re.compile(r"^description$", re.I))


def _resolve_column(
    headers: Sequence[str], patterns: Sequence[re.Pattern[str]], fallback: int
) -> str | None:
    for pat in patterns:
        for h in headers:
            if pat.search(h.strip()):
                return h
    if 0 <= fallback < len(headers):
        return headers[fallback]
    return None


def resolve_columns(headers: Sequence[str]) -> tuple[str | None, str | None, str | None]:
    """Return the ``(date, debit, description)`` header names for ``headers``."""

    return (
        _resolve_column(headers, _DATE_PATTERNS, DATE_FALLBACK_INDEX),
        _resolve_column(headers, _DEBIT_PATTERNS, DEBIT_FALLBACK_INDEX),
        _resolve_column(headers, _DESC_PATTERNS, DESCRIPTION_FALLBACK_INDEX),
    )


def _cell(row: Mapping[str, str | None], key: str | None) -> str:
    if key is None:
        return ""
    value = row.get(key)
    return "" if value is None else str(value)


def ingest_table(
    rows: Sequence[Mapping[str, str | None]], headers: Sequence[str] | None = None
) -> list[Transaction]:
    """Convert header-keyed rows into transactions.

    ``headers`` defaults to the keys of the first row, in order.
    """

    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    date_col, debit_col, desc_col = resolve_columns(headers)
    logger.debug("columns resolved: date=%r debit=%r description=%r", date_col, debit_col, desc_col)

    out: list[Transaction] = []
    dropped = 0
    for row in rows:
        if not row:
            dropped += 1
            continue
        raw_date = _cell(row, date_col).strip()
        description = _cell(row, desc_col).strip()
        amount = parse_amount(_cell(row, debit_col))
        if not (raw_date or description) or not math.isfinite(amount) or amount == 0:
            dropped += 1
            continue
        out.append(
            Transaction(
                raw_date=raw_date,
                parsed_date=parse_date(raw_date),
                amount=amount,
                description=description,
            )
        )
    if dropped:
        logger.debug("dropped %d placeholder row(s)", dropped)
    return out


def read_csv_rows(
    csv_text: str, *, delimiter: str = ","
) -> tuple[list[str], list[dict[str, str]]]:
    """Parse delimited text into ``(headers, rows)`` using :class:`csv.DictReader`.

    Surrounding whitespace is trimmed first and rows whose cells are all empty
    are skipped.
    """

    with StringIO(csv_text.strip()) as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        headers = list(reader.fieldnames or [])
        rows: list[dict[str, str]] = []
        for row in reader:
            # DictReader collects overflow cells under a ``None`` key; drop it.
            normalized = {k: (v if v is not None else "") for k, v in row.items() if k is not None}
            if all(not v.strip() for v in normalized.values()):
                continue
            rows.append(normalized)
    return headers, rows


def ingest_csv_text(csv_text: str, *, delimiter: str = ",") -> list[Transaction]:
    """Parse CSV (or TSV, with ``delimiter="\\t"``) text and ingest its rows."""

    headers, rows = read_csv_rows(csv_text, delimiter=delimiter)
    return ingest_table(rows, headers)


__all__ = ["ingest_table", "ingest_csv_text", "read_csv_rows", "resolve_columns"]
