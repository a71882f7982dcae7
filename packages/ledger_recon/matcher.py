"""Greedy helper-key matcher between the debit and credit sides of a run.

For each debit, in input order, the matcher looks up ``helper_key1`` and then
``helper_key2`` in the credit-side :class:`~ledger_recon.indexer.CandidateIndex`
and takes the earliest credit not yet consumed. This is a first-available
assignment, not an optimal bipartite match: when two debits could each pair
with either of two ambiguous credits the pairing follows input order.
Duplicates are the duplicate detector's concern, not the matcher's.

Per-key cursors skip over consumed positions, so the whole pass is
O(n + m) expected for n debits and m credits.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .indexer import CandidateIndex
from .logging_setup import get_logger
from .models import InvalidInput, MatchedPair, Side, Status, TransactionRecord

_logger = get_logger("ledger_recon.matcher")


@dataclass(slots=True)
class MatchOutcome:
    pairs: list[MatchedPair] = field(default_factory=list)
    pending_debits: list[TransactionRecord] = field(default_factory=list)
    pending_credits: list[TransactionRecord] = field(default_factory=list)
    invalid: list[InvalidInput] = field(default_factory=list)


class _Claims:
    """Consumption state for one matching pass over an index."""

    __slots__ = ("_index", "_consumed", "_cursor")

    def __init__(self, index: CandidateIndex) -> None:
        self._index = index
        self._consumed = [False] * len(index.records)
        self._cursor: dict[str, int] = {}

    def take(self, key: str) -> int | None:
        positions = self._index.positions(key)
        i = self._cursor.get(key, 0)
        while i < len(positions) and self._consumed[positions[i]]:
            i += 1
        self._cursor[key] = i
        if i == len(positions):
            return None
        pos = positions[i]
        self._consumed[pos] = True
        return pos

    def is_consumed(self, pos: int) -> bool:
        return self._consumed[pos]


def match_records(
    debits: Iterable[TransactionRecord | None],
    index: CandidateIndex,
) -> MatchOutcome:
    """Pair debits with indexed credits and classify the leftovers.

    Matched records get ``status = matched`` and ``matched_with`` set to the
    partner's ``record_id``; unmatched debits become ``pending_debit`` and
    never-consumed credits ``pending_credit``. A ``None`` debit is reported in
    ``invalid`` and skipped. An empty index simply leaves every debit pending.
    """

    out = MatchOutcome(invalid=list(index.invalid))
    claims = _Claims(index)
    credits = index.records

    for pos, debit in enumerate(debits):
        if debit is None:
            _logger.warning("Skipping debit %d: record is None", pos)
            out.invalid.append(
                InvalidInput(side=Side.DEBIT, position=pos, reason="debit record is None")
            )
            continue

        found = claims.take(debit.helper_key1)
        if found is None:
            found = claims.take(debit.helper_key2)

        if found is None:
            debit.mark(Status.PENDING_DEBIT)
            out.pending_debits.append(debit)
            continue

        credit = index.candidate(found)
        debit.mark(Status.MATCHED, matched_with=credit.record_id)
        credit.mark(Status.MATCHED, matched_with=debit.record_id)
        out.pairs.append(MatchedPair(debit=debit, credit=credit))

    for pos, credit in enumerate(credits):
        if credit is None or claims.is_consumed(pos):
            continue
        credit.mark(Status.PENDING_CREDIT)
        out.pending_credits.append(credit)

    _logger.info(
        "Matched %d pairs; %d pending debits, %d pending credits",
        len(out.pairs),
        len(out.pending_debits),
        len(out.pending_credits),
    )
    return out


__all__ = ["MatchOutcome", "match_records"]
