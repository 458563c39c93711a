"""Data models for ``spendlite``.

The transaction list is the single source of truth for a classification run:
ingestors create :class:`Transaction` objects once and every later stage
(categorizer, manual overrides) mutates them in place. Rules, by contrast, are
a disposable view derived from the rule text on every pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict

UNCATEGORISED = "UNCATEGORISED"
"""Sentinel category for transactions no rule matched."""


@dataclass(slots=True)
class Transaction:
    """One normalized spending record.

    ``amount`` is the parsed debit value (a magnitude for document sources; tabular
    sources keep the sign found in the debit column). ``parsed_date`` is
    ``None`` when ``raw_date`` could not be understood; such records are left
    out of any month grouping.
    """

    raw_date: str
    parsed_date: date | None
    amount: float
    description: str
    category: str | None = None


@dataclass(frozen=True, slots=True)
class Rule:
    """A keyword-to-category mapping parsed from one rule line."""

    keyword: str
    category: str


@dataclass(frozen=True, slots=True)
class CategoryTotals:
    """Per-category sums sorted by descending total, plus the grand total."""

    rows: list[tuple[str, float]]
    grand: float


@dataclass(frozen=True, slots=True)
class MonthSummary:
    count: int
    debit: float
    credit: float

    @property
    def net(self) -> float:
        return self.debit - self.credit


# ---------------------------------------------------------------------------
# Category picker result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Selected:
    """The user picked an existing category (or typed a new name)."""

    category: str


@dataclass(frozen=True, slots=True)
class AddNew:
    """The user asked to define a new category and keyword."""


@dataclass(frozen=True, slots=True)
class Cancelled:
    """The picker was dismissed without a choice."""


Choice: TypeAlias = Selected | AddNew | Cancelled


# ---------------------------------------------------------------------------
# Export DTO
# ---------------------------------------------------------------------------


class TransactionOut(BaseModel):
    """JSON export shape for a classified transaction."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    raw_date: str
    parsed_date: date | None
    amount: float
    description: str
    category: str

    @classmethod
    def from_transaction(cls, txn: Transaction) -> TransactionOut:
        return cls(
            raw_date=txn.raw_date,
            parsed_date=txn.parsed_date,
            amount=round(txn.amount, 2),
            description=txn.description,
            category=txn.category or UNCATEGORISED,
        )


__all__ = [
    "UNCATEGORISED",
    "Transaction",
    "Rule",
    "CategoryTotals",
    "MonthSummary",
    "Selected",
    "AddNew",
    "Cancelled",
    "Choice",
    "TransactionOut",
]
