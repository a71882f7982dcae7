# ruff: noqa: I001
"""Persistence integration for ledger_recon.

Functions here write classified records to, and read them back from, the
shared database owned by ``libs/db``. They rely on the SQLAlchemy ORM model
``db.models.recon.ReconResult`` and a session provided by ``db.client``.

Scope:
- Insert a run's export rows into ``recon_results`` in fixed-size chunks.
- Query stored rows by status/side/branch/run (pending report).
- Delete stored rows for a branch or run (administrative clear).

Transaction control stays with the caller (``db.client.session_scope``);
store failures surface as :class:`~ledger_recon.errors.PersistenceError`.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.recon import ReconResult
from .errors import PersistenceError
from .logging_setup import get_logger
from .models import EXPORT_COLUMNS, ExportRow, Side, Status

DEFAULT_BRANCH = "DEFAULT_BRANCH"
DEFAULT_CHUNK_SIZE = 200

_logger = get_logger("ledger_recon.persistence")


def _chunks(items: list[dict[str, Any]], size: int) -> Iterable[list[dict[str, Any]]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def insert_results(
    session: Session,
    rows: Iterable[ExportRow],
    *,
    run_id: str,
    branch_code: str = DEFAULT_BRANCH,
    user_id: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Insert ``rows`` into ``recon_results`` and return the number written.

    Parameters
    ----------
    session:
        Active SQLAlchemy session; the caller commits or rolls back.
    rows:
        Export rows of one run, in output order.
    run_id:
        Identifier from :func:`ledger_recon.cache.compute_run_id`.
    branch_code:
        Branch the results belong to; blank values fall back to
        ``DEFAULT_BRANCH``.
    user_id:
        Operator who ran the reconciliation, when known.
    chunk_size:
        Maximum rows per INSERT statement.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    branch = (branch_code or "").strip() or DEFAULT_BRANCH
    payloads: list[dict[str, Any]] = []
    for row in rows:
        values = row.model_dump(mode="json")
        values.update(run_id=run_id, branch_code=branch, user_id=user_id)
        payloads.append(values)

    try:
        for chunk in _chunks(payloads, chunk_size):
            session.execute(insert(ReconResult), chunk)
        session.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to store results for run {run_id[:12]}: {exc}") from exc

    _logger.info("Stored %d result rows for branch %s", len(payloads), branch)
    return len(payloads)


def query_results(
    session: Session,
    *,
    status: Status | Iterable[Status] | None = None,
    side: Side | None = None,
    branch_code: str | None = None,
    run_id: str | None = None,
) -> list[ExportRow]:
    """Return stored rows matching every given filter, in insertion order."""

    stmt = select(ReconResult)
    if status is not None:
        if isinstance(status, str):
            stmt = stmt.where(ReconResult.status == Status(status).value)
        else:
            stmt = stmt.where(ReconResult.status.in_([Status(s).value for s in status]))
    if side is not None:
        stmt = stmt.where(ReconResult.side == Side(side).value)
    if branch_code is not None:
        stmt = stmt.where(ReconResult.branch_code == branch_code)
    if run_id is not None:
        stmt = stmt.where(ReconResult.run_id == run_id)
    stmt = stmt.order_by(ReconResult.id)

    try:
        found = session.execute(stmt).scalars().all()
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to query stored results: {exc}") from exc
    return [ExportRow.model_validate({c: getattr(r, c) for c in EXPORT_COLUMNS}) for r in found]


def delete_results(
    session: Session,
    *,
    branch_code: str | None = None,
    run_id: str | None = None,
) -> int:
    """Delete stored rows (all of them when no filter is given); return the count."""

    stmt = delete(ReconResult)
    if branch_code is not None:
        stmt = stmt.where(ReconResult.branch_code == branch_code)
    if run_id is not None:
        stmt = stmt.where(ReconResult.run_id == run_id)

    try:
        result = session.execute(stmt.execution_options(synchronize_session=False))
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to delete stored results: {exc}") from exc
    count = result.rowcount or 0
    _logger.info("Deleted %d stored result rows", count)
    return count


__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_CHUNK_SIZE",
    "insert_results",
    "query_results",
    "delete_results",
]
