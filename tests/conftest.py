"""Pytest configuration for test isolation.

Runs that cannot reach the record store write a per-run fallback file under a
project-relative directory (``./.cache``), and the database helpers cache one
engine per URL for the whole process. When tests run in the same working tree
either can leak state between tests.

To keep tests hermetic, the cache root is redirected to a unique temporary
directory for each test, and cached engines are disposed afterwards.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines


@pytest.fixture(autouse=True)
def _isolate_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Force a per-test cache root so tests don't share on-disk state.

    The application reads ``LEDGER_RECON_CACHE_DIR`` (when set) to override the
    default ``./.cache`` location. We point it at the test's own temporary
    directory.
    """

    cache_root = tmp_path / "cache"
    cache_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("LEDGER_RECON_CACHE_DIR", os.fspath(cache_root))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop settings that a developer's shell or ``.env`` may have exported."""

    for name in (
        "DATABASE_URL",
        "LEDGER_RECON_NARRATION_KEY_LENGTH",
        "LEDGER_RECON_FUZZY_THRESHOLD",
        "LEDGER_RECON_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()
