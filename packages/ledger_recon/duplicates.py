"""Exact-signature duplicate detection within one record set.

An identity signature is the tuple of the configured record fields, by
default ``(signed_amount, reference)``. Any signature seen more than once
marks every record carrying it as ``duplicate``; this overrides a ``matched``
or ``pending*`` status already assigned by the matchers, and is never applied
to just one record of a colliding group.

Public surface:
- ``DEFAULT_IDENTITY``: the default identity field pair.
- ``identity_signature``: the signature of a single record.
- ``flag_duplicates``: count signatures in O(n) and mark the collisions.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable, Iterable, Sequence

from .logging_setup import get_logger
from .models import Status, TransactionRecord

_logger = get_logger("ledger_recon.duplicates")

DEFAULT_IDENTITY: tuple[str, ...] = ("signed_amount", "reference")
REFERENCE_SET_REMARK = "duplicate in reference set"

# Record attributes that make sense as identity parts.
_IDENTITY_FIELDS: frozenset[str] = frozenset(
    {
        "date",
        "narration",
        "normalized_narration",
        "original_amount_text",
        "signed_amount",
        "reference",
        "helper_key1",
        "helper_key2",
    }
)


def _check_identity(identity: Sequence[str]) -> tuple[str, ...]:
    fields = tuple(identity)
    if not fields:
        raise ValueError("identity must name at least one field")
    unknown = sorted(set(fields) - _IDENTITY_FIELDS)
    if unknown:
        raise ValueError(
            f"Unsupported identity field(s): {unknown}. Allowed: {sorted(_IDENTITY_FIELDS)}"
        )
    return fields


def identity_signature(
    record: TransactionRecord, identity: Sequence[str] = DEFAULT_IDENTITY
) -> tuple[Hashable, ...]:
    return tuple(getattr(record, f) for f in identity)


def flag_duplicates(
    records: Iterable[TransactionRecord | None],
    *,
    identity: Sequence[str] = DEFAULT_IDENTITY,
    remark: str = REFERENCE_SET_REMARK,
) -> list[TransactionRecord]:
    """Mark every record whose identity signature recurs; return them in input order.

    ``None`` entries are skipped (and logged) without affecting the counts of
    the remaining records.
    """

    fields = _check_identity(identity)
    present: list[TransactionRecord] = []
    for pos, rec in enumerate(records):
        if rec is None:
            _logger.warning("Skipping record %d in duplicate detection: record is None", pos)
            continue
        present.append(rec)

    counts = Counter(identity_signature(r, fields) for r in present)
    flagged = [r for r in present if counts[identity_signature(r, fields)] > 1]
    for r in flagged:
        r.mark(Status.DUPLICATE, remark=remark)

    if flagged:
        _logger.info(
            "Flagged %d duplicate records across %d signatures",
            len(flagged),
            sum(1 for c in counts.values() if c > 1),
        )
    return flagged


__all__ = [
    "DEFAULT_IDENTITY",
    "REFERENCE_SET_REMARK",
    "identity_signature",
    "flag_duplicates",
]
