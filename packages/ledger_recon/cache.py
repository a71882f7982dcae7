"""Run identifiers and the local fallback results cache.

This module provides:

- ``compute_run_id``: stable identifier for a reconciliation run over specific
  input rows and settings.
- ``write_fallback`` / ``read_fallback``: a per-run JSON copy of the export
  rows, written when the record store is unavailable so the results of a run
  are never lost.
- ``iter_fallbacks``: every saved run, for reports that cannot reach the store.

Cache layout (relative to the cache root, default: ``./.cache``):

  ``<cache_root>/results/<run_id>.json``

There is exactly one file per run; nothing is stored under a shared "last
results" key, so concurrent runs cannot overwrite each other.

Atomicity: writes target ``.tmp`` first and then ``os.replace`` into place.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import os
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .config import ReconSettings
from .logging_setup import get_logger
from .models import ExportRow, FallbackFile

# Bump only when the on-disk fallback JSON shape changes.
SCHEMA_VERSION: int = 2

_RUN_ID_RE = re.compile(r"^[a-f0-9]{64}$")

_CACHE_ENV = "LEDGER_RECON_CACHE_DIR"

_logger = get_logger("ledger_recon.cache")


def _validate_run_id(run_id: str) -> str:
    """Ensure the run identifier is a 64-char lowercase hex string.

    Prevents path traversal when callers supply an arbitrary string.
    """

    if not _RUN_ID_RE.fullmatch(run_id):
        raise ValueError(
            "Invalid run_id: must be 64-char lowercase hex (sha256 hexdigest). "
            "Use compute_run_id()."
        )
    return run_id


def _get_cache_root() -> Path:
    """Return the cache root directory.

    Default: ``./.cache`` under the current working directory.
    Override: ``LEDGER_RECON_CACHE_DIR`` environment variable.
    """

    root = os.getenv(_CACHE_ENV)
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".cache").resolve()


def _row_fingerprint(row: Mapping[str, Any]) -> str:
    data = json.dumps(dict(row), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def compute_run_id(
    *sides: Iterable[Mapping[str, Any]],
    settings: ReconSettings | None = None,
    workflow: str = "ledgers",
) -> str:
    """Return a stable identifier for the input rows + settings.

    Row fingerprints are order-sensitive within each side, and sides are kept
    apart, so swapping the debit and credit files yields a different id.
    """

    cfg = settings or ReconSettings()
    payload = {
        "workflow": workflow,
        "sides": [[_row_fingerprint(r) for r in side] for side in sides],
        "settings": cfg.model_dump(mode="json"),
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _fallback_path(run_id: str) -> Path:
    run_id = _validate_run_id(run_id)
    return _get_cache_root() / "results" / f"{run_id}.json"


def write_fallback(
    run_id: str,
    rows: Iterable[ExportRow],
    *,
    branch_code: str,
    user_id: str | None = None,
) -> Path:
    """Write the run's export rows to its fallback file and return the path."""

    path = _fallback_path(run_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")

    doc = FallbackFile(
        schema_version=SCHEMA_VERSION,
        run_id=run_id,
        branch_code=branch_code,
        user_id=user_id,
        rows=list(rows),
    )

    try:
        tmp.write_text(
            json.dumps(doc.model_dump(mode="json"), ensure_ascii=False, separators=(",", ":")),
            encoding="utf-8",
        )
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise
    _logger.info("Wrote %d fallback rows to %s", len(doc.rows), os.fspath(path))
    return path


def _load(path: Path) -> FallbackFile | None:
    try:
        parsed = FallbackFile.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError):
        _logger.debug("fallback:read_failed path=%s", os.fspath(path), exc_info=True)
        return None

    if parsed.schema_version != SCHEMA_VERSION or parsed.run_id != path.stem:
        return None
    return parsed


def read_fallback(run_id: str) -> list[ExportRow] | None:
    """Return the rows saved for ``run_id``, or ``None`` when absent or unreadable."""

    path = _fallback_path(run_id)
    if not path.exists():
        return None
    parsed = _load(path)
    return parsed.rows if parsed is not None else None


def iter_fallbacks(*, branch_code: str | None = None) -> Iterator[FallbackFile]:
    """Yield every readable fallback file under the cache root, ordered by run id.

    Files from another schema version, unreadable files and stray names are
    skipped. ``branch_code`` restricts the scan to runs stored for that branch.
    """

    results = _get_cache_root() / "results"
    if not results.is_dir():
        return
    for path in sorted(results.glob("*.json")):
        if not _RUN_ID_RE.fullmatch(path.stem):
            continue
        doc = _load(path)
        if doc is None:
            continue
        if branch_code is not None and doc.branch_code != branch_code:
            continue
        yield doc


__all__ = [
    "SCHEMA_VERSION",
    "compute_run_id",
    "write_fallback",
    "read_fallback",
    "iter_fallbacks",
]
