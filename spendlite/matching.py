"""Keyword matching against transaction descriptions.

A token boundary is the start or end of the text, or any character outside
``[A-Za-z0-9&._]``. Keeping ``&``, ``.`` and ``_`` inside tokens lets merchant
names like ``M&S`` or ``amazon.com`` match as whole tokens.

Three-token keywords are matched as an ordered phrase (only boundary
characters between tokens). Every other token count matches when each token
appears on its own anywhere in the description.
"""

from __future__ import annotations

import re
from functools import lru_cache

_DELIM = r"[^A-Za-z0-9&._]"


@lru_cache(maxsize=1024)
def _compile(keyword: str) -> tuple[re.Pattern[str], ...]:
    tokens = keyword.lower().split()
    if not tokens:
        return ()
    safe = [re.escape(tok) for tok in tokens]
    if len(safe) == 3:
        phrase = f"(?:{_DELIM})+".join(safe)
        return (re.compile(rf"(?:^|{_DELIM}){phrase}(?:{_DELIM}|$)", re.IGNORECASE),)
    return tuple(
        re.compile(rf"(?:^|{_DELIM}){tok}(?:{_DELIM}|$)", re.IGNORECASE) for tok in safe
    )


def matches(description: str | None, keyword: str | None) -> bool:
    """Return True when ``description`` matches the rule ``keyword``."""

    if not keyword:
        return False
    patterns = _compile(keyword)
    if not patterns:
        return False
    text = (description or "").lower()
    return all(p.search(text) for p in patterns)


__all__ = ["matches"]
