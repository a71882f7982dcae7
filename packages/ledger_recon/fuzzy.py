"""Approximate narration matching for sides without a shared key scheme.

Used when free-form narrations (teller tickets) are compared with differently
worded descriptions (general-ledger export), so exact helper keys cannot
join them. Each ticket is paired with the single reference whose narration is
closest, provided the distance is below the threshold; amount and date then
decide between ``matched`` and ``mismatch``.

Scoring uses rapidfuzz's ``token_set_ratio`` with its default processor
(lowercase, non-alphanumerics stripped), expressed as a distance:
``1 - ratio / 100`` where 0 means identical and 1 unrelated. A reference is a
candidate when its distance is strictly below the threshold. Among candidates
the lowest distance wins. Token-set scoring rates a narration whose words are
a subset of the other as distance 0, so equal distances are ranked by the
plain ``ratio`` of the whole strings and only then by reference order.

Cost is O(n·m) comparisons. That is fine for batches in the low thousands of
rows per side; beyond ``FUZZY_COMPARISON_WARN_LIMIT`` comparisons a warning is
logged so callers can split the batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

from rapidfuzz import fuzz, process, utils

from .config import DEFAULT_FUZZY_THRESHOLD
from .keys import format_key_amount
from .logging_setup import get_logger
from .models import InvalidInput, Status, TransactionRecord

_logger = get_logger("ledger_recon.fuzzy")

FUZZY_COMPARISON_WARN_LIMIT = 5_000_000
MISSING_REMARK = "missing in reference set"


class FuzzyVerdict(NamedTuple):
    ticket: TransactionRecord
    reference: TransactionRecord | None
    distance: float | None


@dataclass(slots=True)
class FuzzyOutcome:
    verdicts: list[FuzzyVerdict] = field(default_factory=list)
    invalid: list[InvalidInput] = field(default_factory=list)

    def with_status(self, status: Status) -> list[TransactionRecord]:
        return [v.ticket for v in self.verdicts if v.ticket.status is status]


def narration_distance(a: str, b: str) -> float:
    """Distance between two narrations on the 0 (identical) .. 1 (unrelated) scale."""

    return _to_distance(fuzz.token_set_ratio(a, b, processor=utils.default_process))


def _to_distance(score: float) -> float:
    return round(1.0 - score / 100.0, 9)


def _mismatch_remark(ticket: TransactionRecord, ref: TransactionRecord) -> str | None:
    parts: list[str] = []
    if ticket.signed_amount != ref.signed_amount:
        parts.append(
            f"amount mismatch: {format_key_amount(ticket.signed_amount)} "
            f"vs {format_key_amount(ref.signed_amount)}"
        )
    if ticket.date != ref.date:
        parts.append(f"date mismatch: {ticket.date!r} vs {ref.date!r}")
    return "; ".join(parts) or None


class FuzzyMatcher:
    """Classify tickets against a reference set by narration similarity."""

    def __init__(self, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self.threshold = threshold

    def best_match(
        self, narration: str, choices: Sequence[str]
    ) -> tuple[int, float] | None:
        """Return ``(choice_index, distance)`` of the closest choice below the threshold."""

        if not choices:
            return None
        # score_cutoff is inclusive; the strict comparison happens below
        cutoff = round((1.0 - self.threshold) * 100.0, 9)
        hits = process.extract(
            narration,
            choices,
            scorer=fuzz.token_set_ratio,
            processor=utils.default_process,
            score_cutoff=cutoff,
            limit=None,
        )

        best: tuple[float, float, int] | None = None
        for choice, score, idx in hits:
            distance = _to_distance(score)
            if distance >= self.threshold:
                continue
            full = fuzz.ratio(narration, choice, processor=utils.default_process)
            rank = (distance, -full, int(idx))
            if best is None or rank < best:
                best = rank
        if best is None:
            return None
        distance, _full, idx = best
        return idx, distance

    def classify(
        self,
        tickets: Sequence[TransactionRecord | None],
        references: Sequence[TransactionRecord | None],
    ) -> FuzzyOutcome:
        """Mark every ticket ``matched``, ``mismatch`` or ``pending_post``.

        References are compared but not consumed, so several tickets may
        resolve to the same reference. An empty reference set leaves every
        ticket pending.
        """

        out = FuzzyOutcome()
        refs: list[TransactionRecord] = []
        choices: list[str] = []
        for i, r in enumerate(references):
            if r is None:
                out.invalid.append(
                    InvalidInput(side=None, position=i, reason="reference record is None")
                )
                continue
            refs.append(r)
            choices.append(r.normalized_narration)

        comparisons = len(tickets) * len(choices)
        if comparisons > FUZZY_COMPARISON_WARN_LIMIT:
            _logger.warning(
                "Fuzzy matching %d tickets against %d references (%d comparisons); "
                "consider splitting the batch",
                len(tickets),
                len(choices),
                comparisons,
            )

        for pos, ticket in enumerate(tickets):
            if ticket is None:
                _logger.warning("Skipping ticket %d: record is None", pos)
                out.invalid.append(
                    InvalidInput(side=None, position=pos, reason="ticket record is None")
                )
                continue

            hit = self.best_match(ticket.normalized_narration, choices)
            if hit is None:
                ticket.mark(Status.PENDING_POST, remark=MISSING_REMARK)
                out.verdicts.append(FuzzyVerdict(ticket, None, None))
                continue

            choice_idx, distance = hit
            ref = refs[choice_idx]
            remark = _mismatch_remark(ticket, ref)
            if remark is None:
                ticket.mark(Status.MATCHED, matched_with=ref.record_id)
            else:
                ticket.mark(Status.MISMATCH, remark=remark)
            out.verdicts.append(FuzzyVerdict(ticket, ref, distance))

        _logger.info(
            "Fuzzy classified %d tickets: %d matched, %d mismatched, %d pending",
            len(out.verdicts),
            len(out.with_status(Status.MATCHED)),
            len(out.with_status(Status.MISMATCH)),
            len(out.with_status(Status.PENDING_POST)),
        )
        return out


__all__ = [
    "FUZZY_COMPARISON_WARN_LIMIT",
    "MISSING_REMARK",
    "FuzzyVerdict",
    "FuzzyOutcome",
    "FuzzyMatcher",
    "narration_distance",
]
