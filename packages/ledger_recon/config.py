"""Matching parameters and column-alias configuration.

Settings are plain pydantic models so callers can build them in code, while
:func:`load_settings` layers environment overrides on top of the defaults:

- ``LEDGER_RECON_NARRATION_KEY_LENGTH``: characters used for the first/last
  narration slices (default 15).
- ``LEDGER_RECON_FUZZY_THRESHOLD``: fuzzy distance cutoff on the
  0 (identical) .. 1 (unrelated) scale (default 0.3).

The CLI loads a local ``.env`` before calling :func:`load_settings`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_NARRATION_KEY_LENGTH = 15
DEFAULT_FUZZY_THRESHOLD = 0.3

_ENV_KEY_LENGTH = "LEDGER_RECON_NARRATION_KEY_LENGTH"
_ENV_THRESHOLD = "LEDGER_RECON_FUZZY_THRESHOLD"


class FieldAliases(BaseModel):
    """Accepted column names per logical field, tried in order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: tuple[str, ...] = ("Date", "DATE", "date")
    narration: tuple[str, ...] = ("Narration", "NARRATION", "narration", "Narrative")
    amount: tuple[str, ...] = ("Amount", "AMOUNT", "amount", "Amount (NGN)")
    reference: tuple[str, ...] = ("Reference", "Ticket Reference", "Ticket No", "Ref")

    @field_validator("date", "narration", "amount", "reference")
    @classmethod
    def _non_blank(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        names = tuple(n for n in v if n.strip())
        if not names:
            raise ValueError("at least one non-blank alias is required")
        return names


class ReconSettings(BaseModel):
    """Parameters for a single reconciliation run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    narration_key_length: int = Field(default=DEFAULT_NARRATION_KEY_LENGTH, gt=0)
    fuzzy_threshold: float = Field(default=DEFAULT_FUZZY_THRESHOLD, ge=0.0, le=1.0)
    aliases: FieldAliases = FieldAliases()


def load_settings(
    env: Mapping[str, str] | None = None, **overrides: object
) -> ReconSettings:
    """Build settings from defaults, environment variables and explicit overrides.

    Explicit keyword ``overrides`` win over the environment. Malformed
    environment values raise ``ValueError`` rather than being ignored.
    """

    source = os.environ if env is None else env
    values: dict[str, object] = {}

    raw_len = (source.get(_ENV_KEY_LENGTH) or "").strip()
    if raw_len:
        try:
            values["narration_key_length"] = int(raw_len)
        except ValueError as exc:
            raise ValueError(f"{_ENV_KEY_LENGTH} must be an integer, got {raw_len!r}") from exc

    raw_thr = (source.get(_ENV_THRESHOLD) or "").strip()
    if raw_thr:
        try:
            values["fuzzy_threshold"] = float(raw_thr)
        except ValueError as exc:
            raise ValueError(f"{_ENV_THRESHOLD} must be a number, got {raw_thr!r}") from exc

    values.update({k: v for k, v in overrides.items() if v is not None})
    return ReconSettings.model_validate(values)


__all__ = [
    "DEFAULT_NARRATION_KEY_LENGTH",
    "DEFAULT_FUZZY_THRESHOLD",
    "FieldAliases",
    "ReconSettings",
    "load_settings",
]
