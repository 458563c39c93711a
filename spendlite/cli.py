"""CLI for the ``spendlite`` package.

Command handlers (``cmd_*``) are plain functions returning a process exit
code; the Typer commands at the bottom are thin wrappers around them. The root
callback loads a local ``.env`` with python-dotenv and configures logging
before any command runs. Errors are reported as ``Error: ...`` on stderr with
a non-zero exit status.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .categorize import fuel_overrides
from .config import Settings, load_settings
from .context import ClassificationContext
from .errors import NoTransactionsFound, SpendliteError
from .logging_setup import configure_logging, get_logger
from .models import TransactionOut
from .parsing import format_month_label, month_key
from .report import (
    available_months,
    compute_category_totals,
    filter_by_category,
    filter_by_month,
    month_summary,
    render_totals_report,
    report_filename,
    title_case,
)
from .rules import (
    canonicalize,
    keyword_error,
    read_rules_file,
    upsert_rule,
    write_rules_file,
)

logger = get_logger("spendlite.cli")
console = Console()

OUTPUT_FORMATS = ("table", "json", "tsv")


# ---- Small module-level helpers used by CLI commands -------------------------


def _err(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def _rules_path(rules: Path | None, settings: Settings) -> Path:
    return rules if rules is not None else settings.rules_path


def _read_rules(path: Path) -> str | None:
    try:
        return read_rules_file(path)
    except OSError as e:
        _err(f"Failed to read rules file {path}: {e}")
        return None


def _write_rules(path: Path, text: str) -> bool:
    try:
        write_rules_file(path, text)
    except OSError as e:
        _err(f"Failed to write rules file {path}: {e}")
        return False
    return True


def _load_context(
    source: Path, rules: Path | None, settings: Settings
) -> ClassificationContext | int:
    """Read the source and rules file into a fresh context, or an exit code."""

    from .ingest.utils import load_transactions

    try:
        txns = load_transactions(source, concurrency=settings.pdf_concurrency)
    except FileNotFoundError:
        _err(f"File not found: {source}")
        return 1
    except PermissionError:
        _err(f"Permission denied: {source}")
        return 1
    except NoTransactionsFound as e:
        _err(str(e))
        return 2
    except SpendliteError as e:
        _err(str(e))
        return 1
    except Exception as e:  # pragma: no cover
        _err(f"Unexpected failure reading '{source}': {e}")
        return 1

    rules_text = _read_rules(_rules_path(rules, settings))
    if rules_text is None:
        return 1

    ctx = ClassificationContext(
        transactions=txns,
        rules_text=rules_text,
        overrides=fuel_overrides(settings.small_fuel_threshold),
    )
    ctx.sort_rules()
    return ctx


def _report_label(ctx: ClassificationContext, month: str | None) -> str:
    if month:
        return format_month_label(month)
    first = next((t.parsed_date for t in ctx.transactions if t.parsed_date), None)
    return format_month_label(month_key(first) if first else None)


# ---- Command handlers ---------------------------------------------------------


def cmd_categorize(
    source: Path,
    *,
    rules: Path | None = None,
    month: str | None = None,
    category: str | None = None,
    output_format: str = "table",
    settings: Settings | None = None,
) -> int:
    """Classify ``source`` with the rules file and print one row per transaction."""

    if output_format not in OUTPUT_FORMATS:
        _err(f"Unknown format {output_format!r}; choose from {', '.join(OUTPUT_FORMATS)}")
        return 1
    settings = settings or load_settings()
    ctx = _load_context(source, rules, settings)
    if isinstance(ctx, int):
        return ctx

    ctx.reclassify(month=month)
    rows = filter_by_category(filter_by_month(ctx.transactions, month), category)

    if output_format == "json":
        print(json.dumps([TransactionOut.from_transaction(t).model_dump(mode="json") for t in rows], indent=2))
        return 0
    if output_format == "tsv":
        for t in rows:
            print(f"{t.raw_date}\t{t.amount:.2f}\t{t.category}\t{t.description}")
        return 0

    summary = month_summary(rows)
    table = Table(title=f"Transactions: {format_month_label(month)}")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Category")
    table.add_column("Description")
    for t in rows:
        table.add_row(t.raw_date, f"{t.amount:.2f}", title_case(t.category), t.description)
    console.print(table)
    console.print(
        f"{summary.count} transactions · Debit: ${summary.debit:.2f} · "
        f"Credit: ${summary.credit:.2f} · Net: ${summary.net:.2f}"
    )
    return 0


def cmd_totals(
    source: Path,
    *,
    rules: Path | None = None,
    month: str | None = None,
    output: Path | None = None,
    settings: Settings | None = None,
) -> int:
    """Print (or write) the fixed-width category totals report."""

    settings = settings or load_settings()
    ctx = _load_context(source, rules, settings)
    if isinstance(ctx, int):
        return ctx

    ctx.reclassify(month=month)
    totals = compute_category_totals(filter_by_month(ctx.transactions, month))
    label = _report_label(ctx, month)
    report = render_totals_report(totals, label)

    if output is None:
        print(report)
        return 0
    target = output / report_filename(label) if output.is_dir() else output
    try:
        target.write_text(report, encoding="utf-8")
    except OSError as e:
        _err(f"Failed to write report {target}: {e}")
        return 1
    print(f"Wrote {target}")
    return 0


def cmd_months(source: Path, *, settings: Settings | None = None) -> int:
    settings = settings or load_settings()
    ctx = _load_context(source, None, settings)
    if isinstance(ctx, int):
        return ctx
    for key in available_months(ctx.transactions):
        print(f"{key}\t{format_month_label(key)}")
    return 0


def cmd_sort_rules(
    *, rules: Path | None = None, check: bool = False, settings: Settings | None = None
) -> int:
    """Canonicalize the rules file in place; ``check`` only reports."""

    settings = settings or load_settings()
    path = _rules_path(rules, settings)
    if not path.exists():
        _err(f"File not found: {path}")
        return 1
    text = _read_rules(path)
    if text is None:
        return 1
    result = canonicalize(text)
    if not result.changed:
        print(f"{path} is already sorted.")
        return 0
    if check:
        print(f"{path} would be re-sorted.")
        return 1
    if not _write_rules(path, result.text):
        return 1
    print(f"Sorted {path}.")
    return 0


def cmd_add_rule(
    keyword: str,
    category: str,
    *,
    rules: Path | None = None,
    settings: Settings | None = None,
) -> int:
    settings = settings or load_settings()
    path = _rules_path(rules, settings)
    reason = keyword_error(keyword) or (None if category.strip() else "Category cannot be empty")
    if reason:
        _err(reason)
        return 1
    text = _read_rules(path)
    if text is None:
        return 1
    result = upsert_rule(text, keyword, category)
    if not result.changed:
        print("Rule already present; nothing to do.")
        return 0
    if not _write_rules(path, result.text):
        return 1
    print(f"Saved {keyword.strip().upper()} => {category.strip().upper()} to {path}")
    return 0


def cmd_review(
    source: Path,
    *,
    rules: Path | None = None,
    include_all: bool = False,
    settings: Settings | None = None,
) -> int:
    """Interactively assign categories and persist any new rules."""

    from .review import review_transactions

    settings = settings or load_settings()
    ctx = _load_context(source, rules, settings)
    if isinstance(ctx, int):
        return ctx
    path = _rules_path(rules, settings)
    initial_rules = ctx.rules_text

    ctx.reclassify()
    try:
        summary = review_transactions(ctx, include_all=include_all)
    except (KeyboardInterrupt, EOFError):
        print("Review aborted.")
        summary = None

    if summary is not None:
        print(f"Reviewed {summary.reviewed} transaction(s); {summary.changed} changed.")
    if ctx.rules_text == initial_rules:
        print("No rule changes.")
        return 0
    if not _write_rules(path, ctx.rules_text):
        return 1
    print(f"Rules file updated: {path}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Categorize bank transactions (CSV exports or PDF statements) with a "
        "plain-text KEYWORD => CATEGORY rules file."
    ),
)

SourceOpt = Annotated[
    Path,
    typer.Option(
        "--source",
        "-s",
        help="CSV export or PDF statement to read",
        dir_okay=False,
        exists=False,  # handlers report missing files themselves
    ),
]
RulesOpt = Annotated[
    Path | None,
    typer.Option("--rules", "-r", help="Rules file (defaults to SPENDLITE_RULES_PATH or rules.txt)"),
]
MonthOpt = Annotated[
    str | None, typer.Option("--month", "-m", help="Restrict to one month (YYYY-MM)")
]


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("categorize")
def categorize_cmd(
    source: SourceOpt,
    rules: RulesOpt = None,
    month: MonthOpt = None,
    category: Annotated[str | None, typer.Option(help="Only show this category")] = None,
    output_format: Annotated[
        str, typer.Option("--format", "-f", help="table, json or tsv")
    ] = "table",
) -> None:
    """Classify transactions and print them."""

    _exit(
        cmd_categorize(
            source, rules=rules, month=month, category=category, output_format=output_format
        )
    )


@app.command("totals")
def totals_cmd(
    source: SourceOpt,
    rules: RulesOpt = None,
    month: MonthOpt = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the report to a file or directory")
    ] = None,
) -> None:
    """Print the category totals report."""

    _exit(cmd_totals(source, rules=rules, month=month, output=output))


@app.command("months")
def months_cmd(source: SourceOpt) -> None:
    """List the months present in a source."""

    _exit(cmd_months(source))


@app.command("sort-rules")
def sort_rules_cmd(
    rules: RulesOpt = None,
    check: Annotated[
        bool, typer.Option("--check", help="Exit 1 if the file is not sorted; do not write")
    ] = False,
) -> None:
    """Sort and normalize the rules file."""

    _exit(cmd_sort_rules(rules=rules, check=check))


@app.command("add-rule")
def add_rule_cmd(
    keyword: Annotated[str, typer.Argument(help="Keyword (one or more words)")],
    category: Annotated[str, typer.Argument(help="Category label")],
    rules: RulesOpt = None,
) -> None:
    """Add or update a KEYWORD => CATEGORY rule."""

    _exit(cmd_add_rule(keyword, category, rules=rules))


@app.command("review")
def review_cmd(
    source: SourceOpt,
    rules: RulesOpt = None,
    include_all: Annotated[
        bool, typer.Option("--all", help="Review every transaction, not just uncategorised")
    ] = False,
) -> None:
    """Pick categories interactively and save the resulting rules."""

    _exit(cmd_review(source, rules=rules, include_all=include_all))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    # Attach the handler first so warnings about bad settings are shown.
    configure_logging()
    configure_logging(load_settings().log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
