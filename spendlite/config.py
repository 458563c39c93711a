"""Runtime settings sourced from the environment.

The CLI loads a local ``.env`` (python-dotenv, ``override=False``) before
calling :func:`load_settings`, so values may come from either place. Each
variable is validated individually; a malformed value is logged and replaced
by its default instead of aborting the run.

Variables
---------
- ``SPENDLITE_RULES_PATH``: rules file used when ``--rules`` is omitted.
- ``SPENDLITE_LOG_LEVEL``: level name or number handed to
  :func:`spendlite.logging_setup.configure_logging` by the CLI.
- ``SPENDLITE_PDF_CONCURRENCY``: worker threads for PDF page extraction.
- ``SPENDLITE_SMALL_FUEL_THRESHOLD``: amount at or below which a fuel match
  is reassigned to the incidental category.
"""

from __future__ import annotations

import math
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .logging_setup import get_logger, level_from_name

logger = get_logger("spendlite.config")

DEFAULT_RULES_PATH = Path("rules.txt")


class Settings(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    rules_path: Path = DEFAULT_RULES_PATH
    log_level: str | None = None
    pdf_concurrency: int = 1
    small_fuel_threshold: float = 2.0

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if level_from_name(v) is None:
            raise ValueError(f"unknown log level {v!r}")
        return v.strip().upper()

    @field_validator("pdf_concurrency")
    @classmethod
    def _positive_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pdf_concurrency must be >= 1")
        return v

    @field_validator("small_fuel_threshold")
    @classmethod
    def _non_negative_threshold(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError("small_fuel_threshold must be a finite number >= 0")
        return v


_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "SPENDLITE_RULES_PATH": ("rules_path", Path),
    "SPENDLITE_LOG_LEVEL": ("log_level", str),
    "SPENDLITE_PDF_CONCURRENCY": ("pdf_concurrency", int),
    "SPENDLITE_SMALL_FUEL_THRESHOLD": ("small_fuel_threshold", float),
}


def load_settings() -> Settings:
    """Build :class:`Settings` from environment variables."""

    values: dict[str, object] = {}
    for env_name, (field, caster) in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            candidate = caster(raw.strip())
            # Validate the single field so one bad value doesn't discard the rest.
            Settings(**{field: candidate})
        except (ValueError, ValidationError) as exc:
            logger.warning("ignoring invalid %s=%r: %s", env_name, raw, exc)
            continue
        values[field] = candidate
    return Settings(**values)


__all__ = ["Settings", "load_settings", "DEFAULT_RULES_PATH"]
