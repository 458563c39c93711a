"""Aggregations over classified transactions and the text totals report.

Everything here is derived and recomputed on demand: totals, month lists and
the category vocabulary are never stored alongside the transactions.

The layout produced by :func:`render_totals_report` is relied on by
downstream tooling and must stay byte-for-byte stable::

    SpendLite Category Totals (July 2025)
    =====================================
    Category        Amount      %
    Groceries       120.50  60.2%
    Coffee           79.70  39.8%

    TOTAL           200.20   100%
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from .models import UNCATEGORISED, CategoryTotals, MonthSummary, Rule, Transaction
from .parsing import month_key

UNCATEGORISED_LABEL = "Uncategorised"

_AMOUNT_WIDTH = 12
_PCT_WIDTH = 6
_MIN_CATEGORY_WIDTH = 8


def title_case(label: str | None) -> str:
    """``"EATING_OUT"`` -> ``"Eating Out"``."""

    if not label:
        return ""
    s = re.sub(r"[_-]+", " ", str(label).lower())
    s = re.sub(r"\s+", " ", s).strip()
    return re.sub(r"\b([a-z])", lambda m: m[1].upper(), s)


def compute_category_totals(transactions: Iterable[Transaction]) -> CategoryTotals:
    by_cat: dict[str, float] = {}
    for t in transactions:
        cat = (t.category or UNCATEGORISED).upper()
        by_cat[cat] = by_cat.get(cat, 0.0) + t.amount
    rows = sorted(by_cat.items(), key=lambda kv: kv[1], reverse=True)
    return CategoryTotals(rows=rows, grand=sum(v for _, v in rows))


def available_months(transactions: Iterable[Transaction]) -> list[str]:
    """Sorted ``YYYY-MM`` keys present in ``transactions`` (undated skipped)."""

    return sorted({month_key(t.parsed_date) for t in transactions if t.parsed_date})


def filter_by_month(transactions: Sequence[Transaction], month: str | None) -> list[Transaction]:
    """Transactions dated in ``month``; all of them when ``month`` is empty."""

    if not month:
        return list(transactions)
    return [t for t in transactions if t.parsed_date and month_key(t.parsed_date) == month]


def filter_by_category(
    transactions: Sequence[Transaction], category: str | None
) -> list[Transaction]:
    if not category:
        return list(transactions)
    wanted = category.strip().upper()
    return [t for t in transactions if (t.category or UNCATEGORISED).upper() == wanted]


def month_summary(transactions: Iterable[Transaction]) -> MonthSummary:
    debit = credit = 0.0
    count = 0
    for t in transactions:
        if t.amount > 0:
            debit += t.amount
        else:
            credit += abs(t.amount)
        count += 1
    return MonthSummary(count=count, debit=debit, credit=credit)


def category_vocabulary(
    transactions: Iterable[Transaction], rules: Iterable[Rule]
) -> list[str]:
    """Categories offered to the picker.

    Assigned categories plus rule categories, de-duplicated, with the
    ``Uncategorised`` sentinel first and the rest sorted case-insensitively.
    """

    seen: dict[str, str] = {}
    for raw in [t.category for t in transactions] + [r.category for r in rules]:
        name = (raw or "").strip()
        if not name or name.upper() == UNCATEGORISED:
            continue
        seen.setdefault(name.upper(), name)
    rest = sorted(seen.values(), key=str.casefold)
    return [UNCATEGORISED_LABEL, *rest]


def render_totals_report(totals: CategoryTotals, label: str) -> str:
    """Render the fixed-width category totals report."""

    header = f"SpendLite Category Totals ({label})"
    cat_width = max(
        _MIN_CATEGORY_WIDTH,
        len("Category"),
        *(len(title_case(cat)) for cat, _ in totals.rows),
    )

    def row(name: str, amount: str, pct: str) -> str:
        return f"{name.ljust(cat_width)} {amount.rjust(_AMOUNT_WIDTH)} {pct.rjust(_PCT_WIDTH)}"

    lines = [header, "=" * len(header), row("Category", "Amount", "%")]
    for cat, total in totals.rows:
        pct = (total / totals.grand * 100) if totals.grand else 0.0
        lines.append(row(title_case(cat), f"{total:.2f}", f"{pct:.1f}%"))
    lines.append("")
    lines.append(row("TOTAL", f"{totals.grand:.2f}", "100%"))
    return "\n".join(lines)


def report_filename(label: str) -> str:
    return "category_totals_" + re.sub(r"\s+", "_", label) + ".txt"


__all__ = [
    "UNCATEGORISED_LABEL",
    "title_case",
    "compute_category_totals",
    "available_months",
    "filter_by_month",
    "filter_by_category",
    "month_summary",
    "category_vocabulary",
    "render_totals_report",
    "report_filename",
]
