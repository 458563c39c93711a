"""Pytest configuration for test isolation.

The CLI reads ``SPENDLITE_*`` variables and loads a ``.env`` from the current
working directory. To keep tests hermetic, every test runs from its own
temporary directory with those variables cleared.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_ENV_VARS = (
    "SPENDLITE_RULES_PATH",
    "SPENDLITE_LOG_LEVEL",
    "SPENDLITE_PDF_CONCURRENCY",
    "SPENDLITE_SMALL_FUEL_THRESHOLD",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run each test from ``tmp_path`` with no ``SPENDLITE_*`` overrides."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(os.fspath(tmp_path))
