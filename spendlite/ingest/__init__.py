"""Source adapters producing :class:`~spendlite.models.Transaction` lists."""

from .document_text import ingest_lines, ingest_text, split_lines
from .tabular import ingest_csv_text, ingest_table, read_csv_rows
from .utils import load_transactions, require_transactions

__all__ = [
    "ingest_lines",
    "ingest_text",
    "split_lines",
    "ingest_csv_text",
    "ingest_table",
    "read_csv_rows",
    "load_transactions",
    "require_transactions",
]
