"""PDF text extraction (pdfplumber) feeding the document-text scanner.

Each page is flattened to one line per text run (pdfplumber words with
blank characters kept, in reading order), so the date, description and amount
cells of a statement row land on separate lines the way the scanner expects.
Pages are concatenated in page order.

With ``concurrency > 1`` pages are extracted on a bounded thread pool; each
worker opens its own document handle since pdfplumber pages are not safe to share
across threads. ``Executor.map`` yields results in submission order, which
keeps page 1 ahead of page 2 for the order-sensitive scanner.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from os import PathLike
from pathlib import Path

import pdfplumber

from ..logging_setup import get_logger
from ..models import Transaction
from .document_text import ingest_text

logger = get_logger("spendlite.ingest.pdf")

_MAX_WORKERS = 16


def _page_count(path: Path) -> int:
    with pdfplumber.open(path) as pdf:
        return len(pdf.pages)


def _page_text(page) -> str:
    words = page.extract_words(keep_blank_chars=True)
    return "\n".join(w["text"].strip() for w in words if w["text"].strip())


def _extract_page(path: Path, index: int) -> str:
    with pdfplumber.open(path) as pdf:
        return _page_text(pdf.pages[index])


def extract_pdf_text(path: str | PathLike[str], *, concurrency: int = 1) -> str:
    """Return the text of every page of ``path`` joined by newlines."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    p = Path(path)
    if concurrency == 1:
        with pdfplumber.open(p) as pdf:
            pages = [_page_text(page) for page in pdf.pages]
    else:
        n_pages = _page_count(p)
        workers = max(1, min(concurrency, n_pages, _MAX_WORKERS))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="spendlite-pdf") as ex:
            pages = list(ex.map(lambda i: _extract_page(p, i), range(n_pages)))

    logger.info("extracted %d page(s) from %s", len(pages), p)
    return "".join(text + "\n" for text in pages)


def load_pdf_transactions(
    path: str | PathLike[str], *, concurrency: int = 1
) -> list[Transaction]:
    """Extract ``path`` and scan its text for transactions."""

    return ingest_text(extract_pdf_text(path, concurrency=concurrency))


__all__ = ["extract_pdf_text", "load_pdf_transactions"]
