import json
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

import spendlite.cli as cli
from spendlite.cli import app

runner = CliRunner()

STATEMENT = textwrap.dedent(
    """\
    Date,Amount,Description
    2025-07-01,50.00,WOOLWORTHS 1234 SYDNEY
    2025-07-03,1.50,SHELL COLES EXPRESS
    2025-08-02,30.00,SHELL COLES EXPRESS
    2025-08-05,12.00,NETFLIX.COM
    """
)


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    # Handlers would otherwise bind to the runner's temporary stderr.
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)


@pytest.fixture
def files(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "statement.csv"
    source.write_text(STATEMENT, encoding="utf-8")
    rules = tmp_path / "rules.txt"
    rules.write_text("woolworths => groceries\nshell => petrol\n", encoding="utf-8")
    return source, rules


def test_categorize_tsv(files):
    source, rules = files
    result = runner.invoke(app, ["categorize", "-s", str(source), "-r", str(rules), "-f", "tsv"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        "2025-07-01\t50.00\tGROCERIES\tWOOLWORTHS 1234 SYDNEY",
        "2025-07-03\t1.50\tCOFFEE\tSHELL COLES EXPRESS",
        "2025-08-02\t30.00\tPETROL\tSHELL COLES EXPRESS",
        "2025-08-05\t12.00\tUNCATEGORISED\tNETFLIX.COM",
    ]
    # Reading rules never rewrites the file.
    assert rules.read_text(encoding="utf-8") == "woolworths => groceries\nshell => petrol\n"


def test_categorize_json_month_and_category_filters(files):
    source, rules = files
    result = runner.invoke(
        app,
        ["categorize", "-s", str(source), "-r", str(rules), "-f", "json", "-m", "2025-08",
         "--category", "petrol"],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [
        {
            "raw_date": "2025-08-02",
            "parsed_date": "2025-08-02",
            "amount": 30.0,
            "description": "SHELL COLES EXPRESS",
            "category": "PETROL",
        }
    ]


def test_categorize_uses_rules_path_from_env(files, monkeypatch):
    source, rules = files
    monkeypatch.setenv("SPENDLITE_RULES_PATH", str(rules))
    result = runner.invoke(app, ["categorize", "-s", str(source), "-f", "tsv"])
    assert result.exit_code == 0, result.output
    assert "GROCERIES" in result.output


def test_small_fuel_threshold_from_env(files, monkeypatch):
    source, rules = files
    monkeypatch.setenv("SPENDLITE_SMALL_FUEL_THRESHOLD", "0")
    result = runner.invoke(app, ["categorize", "-s", str(source), "-r", str(rules), "-f", "tsv"])
    assert result.exit_code == 0, result.output
    assert "2025-07-03\t1.50\tPETROL\tSHELL COLES EXPRESS" in result.output.splitlines()


def test_categorize_rejects_unknown_format(files):
    source, rules = files
    result = runner.invoke(app, ["categorize", "-s", str(source), "-r", str(rules), "-f", "xml"])
    assert result.exit_code == 1
    assert "Unknown format 'xml'" in result.output


def test_missing_source_reports_error(tmp_path):
    result = runner.invoke(app, ["categorize", "-s", str(tmp_path / "nope.csv")])
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_source_without_transactions_exits_2(tmp_path):
    empty = tmp_path / "empty.csv"
    empty.write_text("Date,Amount,Description\n", encoding="utf-8")
    result = runner.invoke(app, ["totals", "-s", str(empty)])
    assert result.exit_code == 2
    assert "No transactions found" in result.output


def test_unsupported_source_type(tmp_path):
    xlsx = tmp_path / "statement.xlsx"
    xlsx.write_bytes(b"PK")
    result = runner.invoke(app, ["months", "-s", str(xlsx)])
    assert result.exit_code == 1
    assert "unsupported source type" in result.output


def test_totals_for_month(files):
    source, rules = files
    result = runner.invoke(app, ["totals", "-s", str(source), "-r", str(rules), "-m", "2025-07"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "SpendLite Category Totals (July 2025)"
    assert lines[3].startswith("Groceries")
    assert lines[-1].startswith("TOTAL")
    assert "51.50" in lines[-1]


def test_totals_written_into_directory(files, tmp_path):
    source, rules = files
    out_dir = tmp_path / "reports"
    out_dir.mkdir()
    result = runner.invoke(app, ["totals", "-s", str(source), "-r", str(rules), "-o", str(out_dir)])
    assert result.exit_code == 0, result.output
    # Without --month the label comes from the first dated transaction.
    target = out_dir / "category_totals_July_2025.txt"
    assert f"Wrote {target}" in result.output
    assert target.read_text(encoding="utf-8").startswith("SpendLite Category Totals (July 2025)")


def test_months_lists_keys_and_labels(files):
    source, _ = files
    result = runner.invoke(app, ["months", "-s", str(source)])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["2025-07\tJuly 2025", "2025-08\tAugust 2025"]


def test_sort_rules_check_then_write(files):
    _, rules = files
    check = runner.invoke(app, ["sort-rules", "-r", str(rules), "--check"])
    assert check.exit_code == 1
    assert "would be re-sorted" in check.output
    assert rules.read_text(encoding="utf-8") == "woolworths => groceries\nshell => petrol\n"

    result = runner.invoke(app, ["sort-rules", "-r", str(rules)])
    assert result.exit_code == 0, result.output
    assert rules.read_text(encoding="utf-8") == "SHELL => PETROL\nWOOLWORTHS => GROCERIES"

    again = runner.invoke(app, ["sort-rules", "-r", str(rules), "--check"])
    assert again.exit_code == 0
    assert "already sorted" in again.output


def test_sort_rules_missing_file(tmp_path):
    result = runner.invoke(app, ["sort-rules", "-r", str(tmp_path / "missing.txt")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_add_rule_creates_and_updates(tmp_path):
    rules = tmp_path / "rules.txt"
    result = runner.invoke(app, ["add-rule", "netflix", "subscriptions", "-r", str(rules)])
    assert result.exit_code == 0, result.output
    assert f"Saved NETFLIX => SUBSCRIPTIONS to {rules}" in result.output
    assert "NETFLIX => SUBSCRIPTIONS" in rules.read_text(encoding="utf-8").splitlines()

    again = runner.invoke(app, ["add-rule", "NETFLIX", "Subscriptions", "-r", str(rules)])
    assert again.exit_code == 0
    assert "Rule already present" in again.output

    update = runner.invoke(app, ["add-rule", "netflix", "streaming", "-r", str(rules)])
    assert update.exit_code == 0
    lines = rules.read_text(encoding="utf-8").splitlines()
    assert "NETFLIX => STREAMING" in lines
    assert "NETFLIX => SUBSCRIPTIONS" not in lines


def test_add_rule_rejects_separator_in_keyword(tmp_path):
    rules = tmp_path / "rules.txt"
    result = runner.invoke(app, ["add-rule", "a => b", "x", "-r", str(rules)])
    assert result.exit_code == 1
    assert not rules.exists()


def test_review_persists_rules(files, monkeypatch):
    source, rules = files
    from spendlite.models import Cancelled, Selected

    def fake_review(ctx, *, include_all=False):
        from spendlite.context import apply_choice

        idx = next(i for i, t in enumerate(ctx.transactions) if t.description == "NETFLIX.COM")
        apply_choice(ctx, idx, Selected("Streaming"))
        apply_choice(ctx, 0, Cancelled())
        return None

    monkeypatch.setattr("spendlite.review.review_transactions", fake_review)
    result = runner.invoke(app, ["review", "-s", str(source), "-r", str(rules)])
    assert result.exit_code == 0, result.output
    assert f"Rules file updated: {rules}" in result.output
    assert "NETFLIX.COM => STREAMING" in rules.read_text(encoding="utf-8").splitlines()


def test_review_without_changes_leaves_file(files, monkeypatch):
    source, rules = files
    monkeypatch.setattr("spendlite.review.review_transactions", lambda ctx, **kw: None)
    result = runner.invoke(app, ["review", "-s", str(source), "-r", str(rules)])
    assert result.exit_code == 0, result.output
    assert "No rule changes." in result.output
    assert rules.read_text(encoding="utf-8") == "woolworths => groceries\nshell => petrol\n"


def test_log_level_setting_reaches_logging(files, monkeypatch):
    source, _ = files
    levels = []
    monkeypatch.setattr(cli, "configure_logging", lambda level=None, **kw: levels.append(level))
    monkeypatch.setenv("SPENDLITE_LOG_LEVEL", "debug")
    result = runner.invoke(app, ["months", "-s", str(source)])
    assert result.exit_code == 0, result.output
    assert levels == [None, "DEBUG"]


def test_add_rule_rejects_comment_keyword(tmp_path):
    rules = tmp_path / "rules.txt"
    result = runner.invoke(app, ["add-rule", "#coles", "groceries", "-r", str(rules)])
    assert result.exit_code == 1
    assert "Keyword cannot start with '#'" in result.output
    assert not rules.exists()


@pytest.mark.parametrize(
    "args",
    [["add-rule", "coles", "groceries"], ["sort-rules"], ["categorize", "-f", "tsv"]],
)
def test_unreadable_rules_file_is_reported(files, tmp_path, args):
    source, _ = files
    rules_dir = tmp_path / "rules.d"
    rules_dir.mkdir()
    if args[0] == "categorize":
        args = [*args, "-s", str(source)]
    result = runner.invoke(app, [*args, "-r", str(rules_dir)])
    assert result.exit_code == 1
    assert f"Error: Failed to read rules file {rules_dir}" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def _failing_write(path, text):
    raise PermissionError(13, "Permission denied", str(path))


def test_add_rule_reports_write_failure(files, monkeypatch):
    _, rules = files
    monkeypatch.setattr(cli, "write_rules_file", _failing_write)
    result = runner.invoke(app, ["add-rule", "kmart", "shopping", "-r", str(rules)])
    assert result.exit_code == 1
    assert f"Error: Failed to write rules file {rules}" in result.output
    assert "Saved" not in result.output


def test_sort_rules_reports_write_failure(files, monkeypatch):
    _, rules = files
    monkeypatch.setattr(cli, "write_rules_file", _failing_write)
    result = runner.invoke(app, ["sort-rules", "-r", str(rules)])
    assert result.exit_code == 1
    assert "Failed to write rules file" in result.output
    assert rules.read_text(encoding="utf-8") == "woolworths => groceries\nshell => petrol\n"


def test_review_reports_write_failure(files, monkeypatch):
    source, rules = files
    from spendlite.context import apply_choice
    from spendlite.models import Selected

    def fake_review(ctx, *, include_all=False):
        apply_choice(ctx, 3, Selected("Streaming"))
        return None

    monkeypatch.setattr("spendlite.review.review_transactions", fake_review)
    monkeypatch.setattr(cli, "write_rules_file", _failing_write)
    result = runner.invoke(app, ["review", "-s", str(source), "-r", str(rules)])
    assert result.exit_code == 1
    assert "Failed to write rules file" in result.output
