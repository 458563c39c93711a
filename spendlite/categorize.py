"""Rule-based categorization of transactions.

Precedence is positional: every rule is tried in list order and each match
overwrites the previous one, so the *last* matching rule wins. Since rule text
is kept canonical (sorted by keyword), that means the alphabetically latest
matching keyword decides.

After the match loop a separate post-processing step applies amount-based
overrides. The default table reassigns small fuel-station charges (usually a
coffee or snack at the counter) from ``PETROL`` to ``COFFEE``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger
from .matching import matches
from .models import UNCATEGORISED, Rule, Transaction

logger = get_logger("spendlite.categorize")

FUEL_CATEGORY = "PETROL"
INCIDENTAL_CATEGORY = "COFFEE"
SMALL_FUEL_THRESHOLD = 2.0


@dataclass(frozen=True, slots=True)
class AmountOverride:
    """Replace ``category`` with ``replacement`` when ``|amount| <= max_amount``."""

    category: str
    max_amount: float
    replacement: str


DEFAULT_OVERRIDES: tuple[AmountOverride, ...] = (
    AmountOverride(
        category=FUEL_CATEGORY,
        max_amount=SMALL_FUEL_THRESHOLD,
        replacement=INCIDENTAL_CATEGORY,
    ),
)


def fuel_overrides(threshold: float) -> tuple[AmountOverride, ...]:
    """Default override table with a custom fuel threshold."""

    return (
        AmountOverride(
            category=FUEL_CATEGORY, max_amount=threshold, replacement=INCIDENTAL_CATEGORY
        ),
    )


def match_category(description: str, rules: Iterable[Rule]) -> str | None:
    """Return the category of the last rule matching ``description``."""

    matched: str | None = None
    for rule in rules:
        if matches(description, rule.keyword):
            matched = rule.category
    return matched


def apply_overrides(
    category: str | None, amount: float, overrides: Sequence[AmountOverride]
) -> str | None:
    """Apply the first amount override whose category equals ``category``."""

    if category is None:
        return None
    magnitude = abs(amount)
    for ov in overrides:
        if category.upper() == ov.category.upper() and magnitude <= ov.max_amount:
            return ov.replacement
    return category


def categorize(
    transactions: Iterable[Transaction],
    rules: Sequence[Rule],
    *,
    overrides: Sequence[AmountOverride] = DEFAULT_OVERRIDES,
) -> None:
    """Assign ``category`` on each transaction in place.

    Unmatched transactions get :data:`~spendlite.models.UNCATEGORISED`; with
    an empty rule list every transaction ends up there.
    """

    n = 0
    unmatched = 0
    for txn in transactions:
        category = apply_overrides(
            match_category(txn.description, rules), txn.amount, overrides
        )
        if category is None:
            unmatched += 1
        txn.category = category or UNCATEGORISED
        n += 1
    logger.debug("categorized %d transaction(s); %d uncategorised", n, unmatched)


__all__ = [
    "AmountOverride",
    "DEFAULT_OVERRIDES",
    "FUEL_CATEGORY",
    "INCIDENTAL_CATEGORY",
    "SMALL_FUEL_THRESHOLD",
    "fuel_overrides",
    "match_category",
    "apply_overrides",
    "categorize",
]
