"""Exception types raised at the edges of the ``spendlite`` package.

Parsers and the classification core are total and never raise; these
exceptions are reserved for loaders and entrypoints that need to report an
aggregate condition (e.g., a source that yielded no transactions).
"""

from __future__ import annotations


class SpendliteError(Exception):
    """Base class for all package-specific errors."""


class NoTransactionsFound(SpendliteError):
    """A source was read successfully but no complete record was recovered."""

    def __init__(self, source: str) -> None:
        super().__init__(f"No transactions found in {source}")
        self.source = source


class UnsupportedSourceError(SpendliteError):
    """The source file type cannot be ingested."""


__all__ = ["SpendliteError", "NoTransactionsFound", "UnsupportedSourceError"]
