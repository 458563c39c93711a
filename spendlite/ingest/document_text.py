"""Recover transactions from text extracted out of a PDF statement.

Extracted statement text has no table structure left: each text run (a table
cell, usually) comes out on its own line, in reading order. A record looks like::

    1 Jan 2025          <- date marker opens a record
    COLES SUPERMARKET   <- one or more description lines
    SYDNEY AU
    12.34               <- amount line closes it

The scanner walks the lines once with three states (seeking a date,
accumulating description, closing on an amount). Anything that does not fit
is skipped; a date with no following amount never produces a record.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..logging_setup import get_logger
from ..models import Transaction
from ..parsing import parse_amount, parse_date

logger = get_logger("spendlite.ingest.document_text")

_DATE_MARKER_RE = re.compile(r"^(\d{1,2})\s+([A-Za-z]{3})\s+(\d{4})$")
_AMOUNT_LINE_RE = re.compile(r"^-?\$?\d+\.\d{2}$")
_HEADER_ARTIFACT_RE = re.compile(r"^(withdrawal|deposit|date|description)$", re.IGNORECASE)
_EXCLUDED_DESC_RE = re.compile(r"^PAYMENT[- ]BPAY", re.IGNORECASE)

MONTH_ABBREVIATIONS = {
    "jan": "01",
    "feb": "02",
    "mar": "03",
    "apr": "04",
    "may": "05",
    "jun": "06",
    "jul": "07",
    "aug": "08",
    "sep": "09",
    "oct": "10",
    "nov": "11",
    "dec": "12",
}


def split_lines(text: str | None) -> list[str]:
    """Split extracted text into trimmed, non-empty lines."""

    return [ln.strip() for ln in re.split(r"\n+", text or "") if ln.strip()]


def normalize_marker_date(line: str) -> str | None:
    """Return ``YYYY-MM-DD`` for a ``D Mon YYYY`` marker line, else ``None``."""

    m = _DATE_MARKER_RE.match(line)
    if not m:
        return None
    month = MONTH_ABBREVIATIONS.get(m[2].lower())
    if month is None:
        return None
    return f"{m[3]}-{month}-{int(m[1]):02d}"


def ingest_lines(lines: Iterable[str]) -> list[Transaction]:
    """Scan ``lines`` and return every complete record, in order."""

    txns: list[Transaction] = []
    cur_date: str | None = None
    cur_desc: list[str] = []
    excluded = 0

    for line in lines:
        marker = normalize_marker_date(line)
        if marker is not None:
            # A new marker abandons any half-built record.
            cur_date = marker
            cur_desc = []
            continue

        if _AMOUNT_LINE_RE.match(line) and cur_date is not None:
            description = " ".join(cur_desc).strip()
            if _EXCLUDED_DESC_RE.match(description):
                excluded += 1
            else:
                txns.append(
                    Transaction(
                        raw_date=cur_date,
                        parsed_date=parse_date(cur_date),
                        amount=abs(parse_amount(line)),
                        description=description,
                    )
                )
            cur_date = None
            cur_desc = []
            continue

        if cur_date is not None:
            if _HEADER_ARTIFACT_RE.match(line):
                continue
            cur_desc.append(line)

    if cur_date is not None:
        logger.debug("discarded trailing record dated %s with no amount line", cur_date)
    logger.debug("recovered %d record(s); excluded %d payment(s)", len(txns), excluded)
    return txns


def ingest_text(text: str | None) -> list[Transaction]:
    """Split ``text`` into lines and scan them."""

    return ingest_lines(split_lines(text))


__all__ = [
    "MONTH_ABBREVIATIONS",
    "split_lines",
    "normalize_marker_date",
    "ingest_lines",
    "ingest_text",
]
