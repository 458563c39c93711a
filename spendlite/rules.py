"""Rule text parsing and canonicalization.

Rules live in a plain-text file, one per line::

    # Rules format: KEYWORD => CATEGORY
    COLES => GROCERIES
    COLES EXPRESS FUEL => PETROL

The text is the source of truth. :func:`parse_rules` derives a disposable
``list[Rule]`` from it on every classification pass, and :func:`canonicalize`
rewrites it into a deterministic, sorted form without ever dropping a line the
user typed: anything that isn't a well-formed rule is kept as a comment.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from .logging_setup import get_logger
from .models import Rule

logger = get_logger("spendlite.rules")

SEPARATOR = "=>"
COMMENT_PREFIX = "#"
SAMPLE_RULES = "# Rules format: KEYWORD => CATEGORY\n"

# The separator has no letters, so IGNORECASE is a no-op today; it is kept so a
# future word-style separator stays case-insensitive.
_SEP_RE = re.compile(re.escape(SEPARATOR), re.IGNORECASE)
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_KEYWORD_TOKEN_RE = re.compile(r"[A-Za-z0-9&._]+")


def _split_rule(line: str) -> tuple[str, str] | None:
    """Split ``line`` on the first separator; ``None`` when there is none.

    The remainder is re-joined so a separator inside the category survives.
    """

    parts = _SEP_RE.split(line)
    if len(parts) < 2:
        return None
    return parts[0].strip(), SEPARATOR.join(parts[1:]).strip()


def _is_comment_or_blank(line: str) -> bool:
    trimmed = line.strip()
    return not trimmed or trimmed.startswith(COMMENT_PREFIX)


def parse_rules(text: str | None) -> list[Rule]:
    """Parse rule text into rules, in text order.

    Blank lines, ``#`` comments, lines without ``=>`` and lines with an empty
    keyword or category are skipped.
    """

    rules: list[Rule] = []
    for line in _LINE_SPLIT_RE.split(text or ""):
        if _is_comment_or_blank(line):
            continue
        split = _split_rule(line.strip())
        if split is None:
            continue
        keyword, category = split
        if keyword and category:
            rules.append(Rule(keyword=keyword.lower(), category=category.upper()))
    return rules


@dataclass(frozen=True, slots=True)
class CanonicalRules:
    """Result of a canonicalization pass."""

    text: str
    changed: bool


def canonicalize(text: str | None) -> CanonicalRules:
    """Sort and normalize rule text.

    - Comments, blank lines and any line that is not a complete rule are kept
      verbatim, in their original relative order, at the top.
    - Rule lines are rewritten as ``KEYWORD => CATEGORY`` (upper-cased, single
      spaces) and sorted by keyword, case-insensitively.
    - A single blank line separates the two blocks when both are present.

    Running this on its own output returns the same text with
    ``changed=False``.
    """

    original = text or ""
    comments: list[str] = []
    rule_lines: list[tuple[str, str]] = []

    for line in _LINE_SPLIT_RE.split(original):
        if _is_comment_or_blank(line):
            comments.append(line)
            continue
        split = _split_rule(line)
        if split is None or not split[0] or not split[1]:
            comments.append(line)
            continue
        keyword, category = split
        rule_lines.append((keyword.upper(), f"{keyword.upper()} {SEPARATOR} {category.upper()}"))

    # A trailing blank in the comment block already acts as the separator;
    # adding another would grow the text on every pass.
    if rule_lines:
        while len(comments) > 1 and not comments[-1].strip() and not comments[-2].strip():
            comments.pop()
        if len(comments) == 1 and not comments[0].strip():
            comments = []

    rule_lines.sort(key=lambda kv: kv[0].lower())

    out: list[str] = list(comments)
    if comments and rule_lines and comments[-1].strip():
        out.append("")
    out.extend(line for _, line in rule_lines)

    result = "\n".join(out)
    return CanonicalRules(text=result, changed=result != original)


def keyword_error(keyword: str) -> str | None:
    """Why ``keyword`` cannot start a rule line, or ``None`` when it can."""

    kw = keyword.strip()
    if not kw:
        return "Keyword cannot be empty"
    if SEPARATOR in kw:
        return f"Keyword cannot contain '{SEPARATOR}'"
    if kw.startswith(COMMENT_PREFIX):
        # The line would read back as a comment.
        return f"Keyword cannot start with '{COMMENT_PREFIX}'"
    return None


def upsert_rule(text: str | None, keyword: str, category: str) -> CanonicalRules:
    """Insert or replace the rule for ``keyword`` and canonicalize.

    The first existing line whose keyword matches case-insensitively is
    rewritten in place; otherwise the rule is appended. ``changed`` compares
    against the text passed in. An unusable keyword (see :func:`keyword_error`)
    or a blank category leaves the text unchanged.
    """

    original = text or ""
    kw = keyword.strip().upper()
    cat = category.strip().upper()
    if keyword_error(kw) or not cat:
        return CanonicalRules(text=original, changed=False)

    new_line = f"{kw} {SEPARATOR} {cat}"
    lines = _LINE_SPLIT_RE.split(original) if original else []
    for i, line in enumerate(lines):
        if _is_comment_or_blank(line):
            continue
        split = _split_rule(line.strip())
        if split is not None and split[0].lower() == kw.lower():
            lines[i] = new_line
            break
    else:
        lines.append(new_line)

    result = canonicalize("\n".join(lines)).text
    return CanonicalRules(text=result, changed=result != original)


def derive_keyword(description: str | None) -> str:
    """Suggest a rule keyword from a transaction description.

    Takes up to three ``[A-Za-z0-9&._]`` tokens, upper-cased. The window
    starts at ``PAYPAL`` when present, or just after ``VISA`` for card
    descriptions of the form ``VISA-<merchant>``; otherwise at the first token.
    """

    desc = (description or "").strip()
    if not desc:
        return ""
    tokens = [t.lower() for t in _KEYWORD_TOKEN_RE.findall(desc)]
    if not tokens:
        return ""

    def join3(k: int) -> str:
        return " ".join(t.upper() for t in tokens[k : k + 3])

    if "paypal" in tokens:
        return join3(tokens.index("paypal"))
    if re.search(r"\bVISA-", desc.upper()) and "visa" in tokens:
        start = tokens.index("visa") + 1
        return join3(min(start, max(0, len(tokens) - 1)))
    return join3(0)


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def read_rules_file(path: str | PathLike[str]) -> str:
    """Return the rules text at ``path`` or the sample header when missing."""

    p = Path(path)
    if not p.exists():
        logger.info("rules file %s not found; starting from the sample rules", p)
        return SAMPLE_RULES
    return p.read_text(encoding="utf-8-sig")


def write_rules_file(path: str | PathLike[str], text: str) -> None:
    """Write ``text`` to ``path`` atomically (temp file, then ``os.replace``)."""

    p = Path(path)
    if p.parent and not p.parent.exists():
        p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, p)
    finally:
        if tmp.exists():
            tmp.unlink()
    logger.debug("wrote %d rule line(s) to %s", len(text.splitlines()), p)


__all__ = [
    "SEPARATOR",
    "SAMPLE_RULES",
    "CanonicalRules",
    "parse_rules",
    "canonicalize",
    "keyword_error",
    "upsert_rule",
    "derive_keyword",
    "read_rules_file",
    "write_rules_file",
]
