"""Helper-key index over one side of a reconciliation run."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from .logging_setup import get_logger
from .models import InvalidInput, TransactionRecord

_logger = get_logger("ledger_recon.indexer")


class CandidateIndex:
    """Map each helper key to the ordered positions of candidates producing it.

    A candidate is indexed under both of its helper keys (once when they are
    equal). Positions within a key keep insertion order, so lookups return the
    earliest candidate first and matching stays deterministic.

    Build a fresh index per run; the index holds no matching state itself.
    """

    __slots__ = ("_positions", "_indexed", "records", "invalid")

    def __init__(self, records: Sequence[TransactionRecord | None]) -> None:
        self.records: Sequence[TransactionRecord | None] = records
        self.invalid: list[InvalidInput] = []
        self._positions: dict[str, list[int]] = {}
        self._indexed: dict[int, TransactionRecord] = {}

        for pos, rec in enumerate(records):
            if rec is None:
                _logger.warning("Not indexing candidate %d: record is None", pos)
                self.invalid.append(
                    InvalidInput(side=None, position=pos, reason="candidate record is None")
                )
                continue
            self._indexed[pos] = rec
            for key in _keys_of(rec):
                self._positions.setdefault(key, []).append(pos)

    @classmethod
    def build(cls, records: Sequence[TransactionRecord | None]) -> CandidateIndex:
        return cls(records)

    def positions(self, key: str) -> Sequence[int]:
        """Candidate positions for ``key`` in insertion order (empty when absent)."""

        return self._positions.get(key, ())

    def candidate(self, pos: int) -> TransactionRecord:
        """The indexed record at ``pos``; positions come from :meth:`positions`."""

        return self._indexed[pos]

    def keys(self) -> Iterator[str]:
        return iter(self._positions)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self._positions)


def _keys_of(rec: TransactionRecord) -> tuple[str, ...]:
    if rec.helper_key1 == rec.helper_key2:
        return (rec.helper_key1,)
    return (rec.helper_key1, rec.helper_key2)


__all__ = ["CandidateIndex"]
