"""Interactive review of categories.

Walks the transactions that still need a decision, asks a selector for a
:data:`~spendlite.models.Choice`, resolves ``AddNew`` through the keyword and
name prompts, and hands the result to :func:`~spendlite.context.apply_choice`.
The selector and prompts are injectable so tests can drive the flow without a
terminal.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeAlias

from .context import ClassificationContext, apply_choice
from .logging_setup import get_logger
from .models import UNCATEGORISED, AddNew, Cancelled, Choice, Selected, Transaction
from .report import UNCATEGORISED_LABEL, title_case
from .rules import derive_keyword

logger = get_logger("spendlite.review")

Selector: TypeAlias = Callable[[Sequence[str], str], Choice]
TextPrompt: TypeAlias = Callable[[str], str | None]


def _default_selector(categories: Sequence[str], current: str) -> Choice:
    from .term_ui import pick_category

    return pick_category(categories, current=current)


def _default_keyword_prompt(initial: str) -> str | None:
    from .term_ui import prompt_keyword

    return prompt_keyword(initial=initial)


def _default_name_prompt(initial: str) -> str | None:
    from .term_ui import prompt_new_category

    return prompt_new_category(initial=initial)


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    reviewed: int
    changed: int
    rules_changed: bool


def _needs_review(txn: Transaction, include_all: bool) -> bool:
    return include_all or (txn.category or UNCATEGORISED).upper() == UNCATEGORISED


def _current_label(txn: Transaction) -> str:
    cat = (txn.category or "").strip()
    if not cat or cat.upper() == UNCATEGORISED:
        return UNCATEGORISED_LABEL
    return title_case(cat)


def review_transactions(
    ctx: ClassificationContext,
    *,
    include_all: bool = False,
    selector: Selector | None = None,
    keyword_prompt: TextPrompt | None = None,
    name_prompt: TextPrompt | None = None,
    echo: Callable[[str], None] = builtins.print,
) -> ReviewSummary:
    """Review transactions one at a time and apply each decision to ``ctx``.

    Transactions already categorised by a rule added earlier in the same
    session are skipped unless ``include_all`` is set.
    """

    select = selector or _default_selector
    ask_keyword = keyword_prompt or _default_keyword_prompt
    ask_name = name_prompt or _default_name_prompt

    reviewed = changed = 0
    rules_changed = False
    total = len(ctx.transactions)

    for idx in range(total):
        txn = ctx.transactions[idx]
        if not _needs_review(txn, include_all):
            continue
        reviewed += 1
        echo(f"[{idx + 1}/{total}] {txn.raw_date}  {txn.amount:.2f}  {txn.description}")

        before = txn.category
        current = _current_label(txn)
        choice = select(ctx.categories(), current)
        keyword: str | None = None

        if isinstance(choice, AddNew):
            keyword = ask_keyword(derive_keyword(txn.description))
            initial = "" if current == UNCATEGORISED_LABEL else current.upper()
            name = ask_name(initial) if keyword else None
            choice = Selected(name) if keyword and name else Cancelled()

        if isinstance(choice, Cancelled):
            continue

        if apply_choice(ctx, idx, choice, keyword=keyword):
            rules_changed = True
        if txn.category != before:
            changed += 1

    logger.info("reviewed %d transaction(s); %d changed", reviewed, changed)
    return ReviewSummary(reviewed=reviewed, changed=changed, rules_changed=rules_changed)


__all__ = ["ReviewSummary", "review_transactions", "Selector"]
