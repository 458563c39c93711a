"""Ingest entrypoint shared by CLI commands and workflows.

``load_transactions`` picks the adapter from the file suffix: ``.pdf`` goes
through pdfplumber and the document-text scanner, everything else is read as
a delimited text export (tab-separated for ``.tsv``, comma-separated
otherwise). An empty result is reported as
:class:`~spendlite.errors.NoTransactionsFound` so the caller can tell the user
nothing was recognized.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..errors import NoTransactionsFound, UnsupportedSourceError
from ..logging_setup import get_logger
from ..models import Transaction
from .tabular import ingest_csv_text

logger = get_logger("spendlite.ingest")

TEXT_SUFFIXES = {".csv", ".txt", ".tsv", ""}
TAB_SUFFIXES = {".tsv"}


def require_transactions(txns: list[Transaction], *, source: str) -> list[Transaction]:
    """Return ``txns`` unchanged, raising when it is empty."""

    if not txns:
        raise NoTransactionsFound(source)
    return txns


def load_transactions(
    path: str | PathLike[str], *, concurrency: int = 1
) -> list[Transaction]:
    """Read ``path`` and return its transactions (never empty)."""

    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".pdf":
        from .pdf import load_pdf_transactions  # defer pdfplumber import

        txns = load_pdf_transactions(p, concurrency=concurrency)
    elif suffix in TEXT_SUFFIXES:
        delimiter = "\t" if suffix in TAB_SUFFIXES else ","
        txns = ingest_csv_text(p.read_text(encoding="utf-8-sig"), delimiter=delimiter)
    else:
        raise UnsupportedSourceError(f"unsupported source type {suffix!r}: {p}")

    logger.info("loaded %d transaction(s) from %s", len(txns), p)
    return require_transactions(txns, source=str(p))


__all__ = ["load_transactions", "require_transactions"]
