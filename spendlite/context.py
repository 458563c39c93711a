"""Explicit state for a classification session.

A :class:`ClassificationContext` owns the canonical transaction list and the
rule text for one run and is passed to each stage. Rules are re-parsed from
``rules_text`` on every :meth:`ClassificationContext.reclassify` call.

:func:`apply_choice` is the reaction to a category picker result. It depends
only on the returned :data:`~spendlite.models.Choice` variant, so the review
flow can drive it from a terminal prompt, a test stub or anything else.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .categorize import DEFAULT_OVERRIDES, AmountOverride, categorize
from .logging_setup import get_logger
from .models import AddNew, Cancelled, CategoryTotals, Choice, Rule, Selected, Transaction
from .report import (
    UNCATEGORISED_LABEL,
    category_vocabulary,
    compute_category_totals,
    filter_by_month,
)
from .rules import canonicalize, derive_keyword, parse_rules, upsert_rule

logger = get_logger("spendlite.context")


@dataclass(slots=True)
class ClassificationContext:
    transactions: list[Transaction]
    rules_text: str = ""
    rules: list[Rule] = field(default_factory=list)
    overrides: Sequence[AmountOverride] = DEFAULT_OVERRIDES

    def sort_rules(self) -> bool:
        """Canonicalize ``rules_text`` in place; True when it changed."""

        result = canonicalize(self.rules_text)
        if result.changed:
            self.rules_text = result.text
        return result.changed

    def reclassify(self, *, month: str | None = None) -> CategoryTotals:
        """Re-parse rules, categorize (optionally one month) and return totals."""

        self.rules = parse_rules(self.rules_text)
        scope = filter_by_month(self.transactions, month)
        categorize(scope, self.rules, overrides=self.overrides)
        return compute_category_totals(scope)

    def categories(self) -> list[str]:
        return category_vocabulary(self.transactions, self.rules)


def apply_choice(
    ctx: ClassificationContext,
    index: int,
    choice: Choice,
    *,
    keyword: str | None = None,
) -> bool:
    """Apply a picker result to ``ctx.transactions[index]``.

    - ``Selected(category)``: assign the category. ``Uncategorised`` clears
      it. For a real category a rule ``<keyword> => <CATEGORY>`` is upserted,
      with ``keyword`` defaulting to :func:`~spendlite.rules.derive_keyword`
      of the description, and the context is reclassified.
    - ``Cancelled``: no change.
    - ``AddNew``: rejected; the caller collects a name (and keyword) first and
      passes ``Selected(name)``.

    Returns True when ``ctx.rules_text`` changed.
    """

    match choice:
        case Cancelled():
            return False
        case AddNew():
            raise ValueError("AddNew must be resolved to Selected(name) before applying")
        case Selected(category=chosen):
            pass
        case _:
            raise TypeError(f"unexpected choice: {choice!r}")

    if not 0 <= index < len(ctx.transactions):
        raise IndexError(f"transaction index out of range: {index}")
    txn = ctx.transactions[index]

    chosen = chosen.strip()
    if not chosen or chosen.upper() == UNCATEGORISED_LABEL.upper():
        txn.category = None
        return False

    category = chosen.upper()
    txn.category = category

    kw = (keyword or "").strip() or derive_keyword(txn.description)
    if not kw:
        return False
    result = upsert_rule(ctx.rules_text, kw, category)
    if not result.changed:
        return False
    ctx.rules_text = result.text
    logger.info("rule %s => %s saved", kw.upper(), category)
    ctx.reclassify()
    return True


__all__ = ["ClassificationContext", "apply_choice"]
