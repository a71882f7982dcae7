"""Data models for ``ledger_recon``.

``RawRow`` is the loosely-typed mapping produced by spreadsheet ingestion;
column names vary in casing and spelling between sources and are resolved
through alias lists by :mod:`ledger_recon.normalizers`.

``TransactionRecord`` is the canonical, engine-owned record. It is created
once per raw row, carries its derived join keys from creation time, and is
afterwards mutated only through :meth:`TransactionRecord.mark` by the matcher,
the fuzzy matcher and the duplicate detector. Records belong to exactly one
reconciliation run and are never reused across runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from .errors import InvalidTransitionError

# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

type RawRow = Mapping[str, Any]
"""A single spreadsheet row: column name -> untyped cell value."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Side(StrEnum):
    """Which ledger a record came from; assigned by the ingesting workflow."""

    DEBIT = "debit"
    CREDIT = "credit"


class Status(StrEnum):
    UNCLASSIFIED = "unclassified"
    MATCHED = "matched"
    PENDING_DEBIT = "pending_debit"
    PENDING_CREDIT = "pending_credit"
    PENDING_POST = "pending_post"
    MISMATCH = "mismatch"
    DUPLICATE = "duplicate"


PENDING_STATUSES: frozenset[Status] = frozenset(
    {Status.PENDING_DEBIT, Status.PENDING_CREDIT, Status.PENDING_POST}
)


# ---------------------------------------------------------------------------
# Canonical record
# ---------------------------------------------------------------------------


@dataclass(slots=True, eq=False)
class TransactionRecord:
    """A normalized transaction with its derived join keys and run status.

    Records compare by identity (``eq=False``): two rows with identical
    content are still two records, which is what duplicate detection needs.
    """

    record_id: str
    date: str
    narration: str
    normalized_narration: str
    original_amount_text: str
    signed_amount: float
    is_negative: bool
    first15: str
    last15: str
    helper_key1: str
    helper_key2: str
    reference: str = ""
    side: Side | None = None
    status: Status = Status.UNCLASSIFIED
    matched_with: str | None = None
    remark: str | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "side" and value is not None:
            value = Side(value)
            current = getattr(self, "side", None)
            if current is not None and current is not value:
                raise InvalidTransitionError(
                    f"record {self.record_id!r} already belongs to the {current} side"
                )
        object.__setattr__(self, name, value)

    def mark(
        self,
        status: Status,
        *,
        remark: str | None = None,
        matched_with: str | None = None,
    ) -> bool:
        """Move the record to ``status``; return whether the change was applied.

        Allowed: any move out of ``unclassified``; any move to ``duplicate``;
        re-marking with the current status. ``duplicate`` is terminal, so later
        non-duplicate marks are ignored and return ``False``. Everything else
        raises :class:`InvalidTransitionError`.
        """

        status = Status(status)
        if self.status is Status.DUPLICATE and status is not Status.DUPLICATE:
            return False
        if status is Status.UNCLASSIFIED and self.status is not Status.UNCLASSIFIED:
            raise InvalidTransitionError(
                f"record {self.record_id!r} cannot return to unclassified from {self.status}"
            )
        if not (
            self.status is Status.UNCLASSIFIED
            or status is Status.DUPLICATE
            or status is self.status
        ):
            raise InvalidTransitionError(
                f"record {self.record_id!r} cannot move from {self.status} to {status}"
            )

        self.status = status
        self.matched_with = matched_with if status is Status.MATCHED else None
        if remark is not None:
            self.remark = remark
        return True


class InvalidInput(NamedTuple):
    """A row or record skipped by a batch operation."""

    side: Side | None
    position: int
    reason: str


class MatchedPair(NamedTuple):
    debit: TransactionRecord
    credit: TransactionRecord


# ---------------------------------------------------------------------------
# Export DTO
# ---------------------------------------------------------------------------


class ExportRow(BaseModel):
    """Flat projection of a record for persistence and file export.

    Field names follow the ``recon_results`` table columns.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    record_id: str | None = None
    date: str = ""
    narration: str = ""
    original_amount: str = ""
    reference: str = ""
    signed_amount: float = 0.0
    is_negative: bool = False
    first15: str = ""
    last15: str = ""
    helper_key1: str = ""
    helper_key2: str = ""
    side: Side | None = None
    status: Status = Status.UNCLASSIFIED
    remark: str | None = None
    matched_with: str | None = None


EXPORT_COLUMNS: tuple[str, ...] = tuple(ExportRow.model_fields)


class FallbackFile(BaseModel):
    """On-disk schema of a run's local fallback results file."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int
    run_id: str
    branch_code: str
    user_id: str | None = None
    rows: list[ExportRow]


__all__ = [
    "RawRow",
    "Side",
    "Status",
    "PENDING_STATUSES",
    "TransactionRecord",
    "InvalidInput",
    "MatchedPair",
    "ExportRow",
    "EXPORT_COLUMNS",
    "FallbackFile",
]
