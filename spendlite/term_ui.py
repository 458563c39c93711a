"""Terminal prompts for picking a category (prompt_toolkit-based).

Kept apart from the classification core so they can be tested in isolation
with a pipe input. Every prompt returns a plain value: the picker returns a
:data:`~spendlite.models.Choice`, the text prompts return ``str | None``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .models import AddNew, Cancelled, Choice, Selected
from .rules import keyword_error

ADD_NEW_SENTINEL = "+ Add new category..."

_NAME_RE = re.compile(r"^[A-Za-z0-9 &\-/_.]+$")


def validate_category_name(name: str, *, max_len: int = 64) -> str | None:
    """Return an error message for ``name`` or ``None`` when it is usable."""

    n = " ".join(name.strip().split())
    if not n:
        return "Name cannot be empty"
    if len(n) > max_len:
        return f"Name must be at most {max_len} characters"
    if "=>" in n:
        return "Name cannot contain '=>'"
    if not _NAME_RE.match(n):
        return "Only letters, numbers, spaces, and & - / _ . are allowed"
    return None


def _is_add_new(value: str) -> bool:
    v = value.strip().lower()
    return v.startswith("+") or "add new category" in v


class _PrefixSuggest(AutoSuggest):
    """Grey inline completion for the first category starting with the input."""

    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = [w for w in vocab if w != ADD_NEW_SENTINEL]

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        for w in self._vocab:
            if w.lower() == lower:
                return None
        for w in self._vocab:
            if w.lower().startswith(lower):
                return Suggestion(w[len(text) :])
        return None


def _cancel_bindings() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-c", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    return kb


def _session(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def pick_category(
    categories: Sequence[str] | Iterable[str],
    *,
    current: str,
    message: str = "Category (Enter to accept • Esc to cancel): ",
    session: PromptSession | None = None,
) -> Choice:
    """Ask for a category, pre-filled with ``current``.

    Returns ``Selected(name)`` for a known or newly typed name, ``AddNew``
    when the ``+ Add new category...`` entry is chosen, and ``Cancelled`` on
    Esc or Ctrl+C. An empty answer keeps ``current``.
    """

    words = [ADD_NEW_SENTINEL, *[c for c in categories if c != ADD_NEW_SENTINEL]]
    canonical = {w.lower(): w for w in words}
    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=True)

    def _best_prefix_match(text: str) -> str | None:
        lower = text.lower()
        if not lower or lower in canonical:
            return None
        for w in words[1:]:
            if w.lower().startswith(lower):
                return w
        return None

    kb = _cancel_bindings()

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            # The background suggestion may not have landed yet (pipe input),
            # so recompute the prefix completion here.
            cand = _best_prefix_match(b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    sess = _session(session, kb)
    result = sess.prompt(
        message,
        default=current or "",
        completer=completer,
        auto_suggest=_PrefixSuggest(words),
        key_bindings=kb,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )

    if result is None:
        return Cancelled()
    value = result.strip() or (current or "").strip()
    if not value:
        return Cancelled()
    if _is_add_new(value):
        return AddNew()
    return Selected(canonical.get(value.lower(), value))


class _CategoryNameValidator(Validator):
    def validate(self, document) -> None:
        reason = validate_category_name(document.text)
        if reason:
            raise ValidationError(message=reason)


def prompt_new_category(
    *,
    initial: str = "",
    session: PromptSession | None = None,
    message: str = "New category name (Enter to save • Esc to cancel): ",
) -> str | None:
    """Collect a new category name; ``None`` when cancelled."""

    sess = _session(session, _cancel_bindings())
    value = sess.prompt(
        message,
        default=initial,
        validator=_CategoryNameValidator(),
        validate_while_typing=False,
    )
    if value is None:
        return None
    return " ".join(value.strip().split()).upper()


class _KeywordValidator(Validator):
    def validate(self, document) -> None:
        reason = keyword_error(document.text)
        if reason:
            raise ValidationError(message=reason)


def prompt_keyword(
    *,
    initial: str = "",
    session: PromptSession | None = None,
    message: str = "Keyword to match (Enter to save • Esc to cancel): ",
) -> str | None:
    """Collect a rule keyword, pre-filled with a suggestion."""

    sess = _session(session, _cancel_bindings())
    value = sess.prompt(
        message,
        default=initial,
        validator=_KeywordValidator(),
        validate_while_typing=False,
    )
    if value is None:
        return None
    return " ".join(value.strip().split()).upper()


__all__ = [
    "ADD_NEW_SENTINEL",
    "pick_category",
    "prompt_new_category",
    "prompt_keyword",
    "validate_category_name",
]
