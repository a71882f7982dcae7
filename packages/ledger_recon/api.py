"""Public orchestration for one reconciliation run.

Two workflows are exposed:

- :func:`reconcile_ledgers`: exact helper-key matching between a debit
  ledger (e.g. the previous pending sheet) and a credit ledger (e.g. the
  current period). Every debit ends ``matched``/``pending_debit`` and every
  credit ``matched``/``pending_credit``, unless duplicate detection is
  requested and overrides them with ``duplicate``.
- :func:`reconcile_tickets`: fuzzy narration matching of teller tickets
  against a reference (general-ledger) export, followed by duplicate
  detection inside the reference set.

Each call normalizes its own records and builds its own index; nothing is
shared between runs, so concurrent runs for different branches are
independent.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .config import ReconSettings
from .duplicates import DEFAULT_IDENTITY, REFERENCE_SET_REMARK, flag_duplicates
from .fuzzy import FuzzyMatcher, FuzzyOutcome
from .indexer import CandidateIndex
from .logging_setup import get_logger
from .matcher import MatchOutcome, match_records
from .models import InvalidInput, Side, Status, TransactionRecord
from .normalizers import normalize_rows

_logger = get_logger("ledger_recon.api")


class ReconciliationSummary(NamedTuple):
    matched_count: int
    pending_debit_count: int
    pending_credit_count: int
    duplicate_count: int = 0


class TicketSummary(NamedTuple):
    matched_count: int
    mismatch_count: int
    pending_post_count: int
    duplicate_count: int = 0


@dataclass(slots=True)
class ReconciliationResult:
    debits: list[TransactionRecord]
    credits: list[TransactionRecord]
    outcome: MatchOutcome
    duplicates: list[TransactionRecord] = field(default_factory=list)
    invalid: list[InvalidInput] = field(default_factory=list)

    @property
    def summary(self) -> ReconciliationSummary:
        """Counts as produced by the matcher; ``duplicate_count`` from the override pass."""

        return ReconciliationSummary(
            matched_count=len(self.outcome.pairs),
            pending_debit_count=len(self.outcome.pending_debits),
            pending_credit_count=len(self.outcome.pending_credits),
            duplicate_count=len(self.duplicates),
        )

    def rows(self) -> Iterator[TransactionRecord]:
        """Matched pairs (debit then credit), then pending debits, then pending credits."""

        for pair in self.outcome.pairs:
            yield pair.debit
            yield pair.credit
        yield from self.outcome.pending_debits
        yield from self.outcome.pending_credits


@dataclass(slots=True)
class TicketReconciliationResult:
    tickets: list[TransactionRecord]
    references: list[TransactionRecord]
    outcome: FuzzyOutcome
    duplicates: list[TransactionRecord] = field(default_factory=list)
    invalid: list[InvalidInput] = field(default_factory=list)

    @property
    def summary(self) -> TicketSummary:
        statuses = [t.status for t in self.tickets]
        return TicketSummary(
            matched_count=statuses.count(Status.MATCHED),
            mismatch_count=statuses.count(Status.MISMATCH),
            pending_post_count=statuses.count(Status.PENDING_POST),
            duplicate_count=len(self.duplicates),
        )

    def rows(self) -> Iterator[TransactionRecord]:
        """All tickets in input order, then all reference records."""

        yield from self.tickets
        yield from self.references


def reconcile_ledgers(
    debit_rows: Iterable[Mapping[str, Any]],
    credit_rows: Iterable[Mapping[str, Any]],
    *,
    settings: ReconSettings | None = None,
    duplicate_identity: Sequence[str] | None = None,
) -> ReconciliationResult:
    """Normalize both ledgers, match debits to credits, and classify leftovers.

    When ``duplicate_identity`` is given (e.g. ``("signed_amount",
    "reference")``), duplicates are flagged within each side after matching.
    """

    cfg = settings or ReconSettings()
    debits, invalid_d = normalize_rows(debit_rows, side=Side.DEBIT, settings=cfg)
    credits, invalid_c = normalize_rows(credit_rows, side=Side.CREDIT, settings=cfg)

    index = CandidateIndex.build(credits)
    outcome = match_records(debits, index)

    duplicates: list[TransactionRecord] = []
    if duplicate_identity:
        duplicates += flag_duplicates(
            debits, identity=duplicate_identity, remark="duplicate in debit set"
        )
        duplicates += flag_duplicates(
            credits, identity=duplicate_identity, remark="duplicate in credit set"
        )

    result = ReconciliationResult(
        debits=debits,
        credits=credits,
        outcome=outcome,
        duplicates=duplicates,
        invalid=[*invalid_d, *invalid_c, *outcome.invalid],
    )
    s = result.summary
    _logger.info(
        "Ledger reconciliation: %d debits, %d credits -> %d matched pairs, "
        "%d pending debits, %d pending credits, %d duplicates",
        len(debits),
        len(credits),
        s.matched_count,
        s.pending_debit_count,
        s.pending_credit_count,
        s.duplicate_count,
    )
    return result


def reconcile_tickets(
    ticket_rows: Iterable[Mapping[str, Any]],
    reference_rows: Iterable[Mapping[str, Any]],
    *,
    settings: ReconSettings | None = None,
    duplicate_identity: Sequence[str] = DEFAULT_IDENTITY,
) -> TicketReconciliationResult:
    """Fuzzy-match tickets to reference rows, then flag duplicates in the reference set."""

    cfg = settings or ReconSettings()
    tickets, invalid_t = normalize_rows(
        ticket_rows, side=Side.DEBIT, settings=cfg, id_prefix="ticket"
    )
    references, invalid_r = normalize_rows(
        reference_rows, side=Side.CREDIT, settings=cfg, id_prefix="reference"
    )

    outcome = FuzzyMatcher(cfg.fuzzy_threshold).classify(tickets, references)
    duplicates = flag_duplicates(
        references, identity=duplicate_identity, remark=REFERENCE_SET_REMARK
    )

    result = TicketReconciliationResult(
        tickets=tickets,
        references=references,
        outcome=outcome,
        duplicates=duplicates,
        invalid=[*invalid_t, *invalid_r, *outcome.invalid],
    )
    s = result.summary
    _logger.info(
        "Ticket reconciliation: %d tickets, %d references -> %d matched, %d mismatched, "
        "%d pending post, %d duplicate references",
        len(tickets),
        len(references),
        s.matched_count,
        s.mismatch_count,
        s.pending_post_count,
        s.duplicate_count,
    )
    return result


__all__ = [
    "ReconciliationSummary",
    "TicketSummary",
    "ReconciliationResult",
    "TicketReconciliationResult",
    "reconcile_ledgers",
    "reconcile_tickets",
]
