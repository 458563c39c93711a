"""Public interface for the ``spendlite`` package.

Re-exports the classification core and its models as the stable import
surface. There is no runtime logic here.
"""

from .categorize import AmountOverride, apply_overrides, categorize
from .context import ClassificationContext, apply_choice
from .errors import NoTransactionsFound, SpendliteError, UnsupportedSourceError
from .ingest import ingest_lines, ingest_table, ingest_text, load_transactions
from .matching import matches
from .models import (
    UNCATEGORISED,
    AddNew,
    Cancelled,
    CategoryTotals,
    Choice,
    Rule,
    Selected,
    Transaction,
)
from .parsing import parse_amount, parse_date
from .report import compute_category_totals, render_totals_report
from .rules import canonicalize, parse_rules, upsert_rule

__all__ = [
    # Parsing / ingestion
    "parse_date",
    "parse_amount",
    "ingest_table",
    "ingest_lines",
    "ingest_text",
    "load_transactions",
    # Rules and classification
    "parse_rules",
    "canonicalize",
    "upsert_rule",
    "matches",
    "categorize",
    "apply_overrides",
    "AmountOverride",
    "ClassificationContext",
    "apply_choice",
    # Reporting
    "compute_category_totals",
    "render_totals_report",
    # Models
    "Transaction",
    "Rule",
    "CategoryTotals",
    "Choice",
    "Selected",
    "AddNew",
    "Cancelled",
    "UNCATEGORISED",
    # Errors
    "SpendliteError",
    "NoTransactionsFound",
    "UnsupportedSourceError",
]
