"""Raw spreadsheet row → canonical :class:`~ledger_recon.models.TransactionRecord`.

Sources (teller exports, GL dumps, prior pending sheets) spell their columns
differently, so each logical field has an ordered alias list; an exact alias
hit wins, then a case- and whitespace-insensitive match against every column,
and finally an empty/zero default. Missing columns never raise.

Amount parsing is permissive: unparseable amounts resolve to ``0.0`` instead
of failing the row.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, NamedTuple

from .config import DEFAULT_NARRATION_KEY_LENGTH, FieldAliases, ReconSettings
from .errors import InvalidInputError
from .keys import derive_keys
from .logging_setup import get_logger
from .models import InvalidInput, Side, TransactionRecord

_logger = get_logger("ledger_recon.normalizers")

_DEFAULT_ALIASES = FieldAliases()

# Leading numeric prefix, mirroring a lenient float parse ("12.5abc" -> 12.5).
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_WHITESPACE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Helpers (field lookup, cell text, amount parsing)
# ---------------------------------------------------------------------------


def _fold(name: str) -> str:
    return "".join(name.split()).lower()


def resolve_field(row: Mapping[str, Any], names: Sequence[str]) -> Any:
    """Return the cell for the first matching alias, or ``None``.

    Exact aliases are tried first, in order. Otherwise every row key is
    compared to the aliases ignoring case and whitespace, in row order.
    """

    for n in names:
        if n in row:
            return row[n]
    folded = {_fold(n) for n in names}
    for k in row:
        if isinstance(k, str) and _fold(k) in folded:
            return row[k]
    return None


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    # openpyxl yields datetime cells; keep date-only values date-shaped.
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def clean_narration(text: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""

    return _WHITESPACE.sub(" ", text).strip()


class ParsedAmount(NamedTuple):
    original: str
    value: float
    is_negative: bool


def _is_currency_symbol(ch: str) -> bool:
    return unicodedata.category(ch) == "Sc"


def parse_amount(raw: Any) -> ParsedAmount:
    """Parse an amount cell into ``(original_text, value, is_negative)``.

    Steps: keep only ASCII digits, ``-``, ``.``, ``,``, parentheses and
    currency symbols; drop the currency symbols; a value wrapped in
    parentheses is negative; thousands separators are removed; the leading
    numeric prefix is parsed as a float. When nothing parses the value is
    ``0.0`` and ``is_negative`` reflects the parenthesized notation only.
    """

    if raw is None or raw == "":
        return ParsedAmount("", 0.0, False)
    original = _cell_text(raw).strip()

    kept = "".join(
        ch for ch in original if ch in "0123456789-.,()" or _is_currency_symbol(ch)
    )
    kept = "".join(ch for ch in kept if not _is_currency_symbol(ch))

    parenthesized = len(kept) >= 2 and kept.startswith("(") and kept.endswith(")")
    if parenthesized:
        kept = kept[1:-1]
    kept = kept.replace(",", "")

    m = _LEADING_NUMBER.match(kept)
    value = float(m.group(0)) if m else 0.0
    if parenthesized:
        value = -abs(value)
    if value == 0:
        value = 0.0  # no negative zero in keys or exports
    return ParsedAmount(original, value, parenthesized or value < 0)


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


def normalize_row(
    row: Mapping[str, Any],
    *,
    aliases: FieldAliases | None = None,
    key_length: int = DEFAULT_NARRATION_KEY_LENGTH,
    side: Side | None = None,
    record_id: str | None = None,
) -> TransactionRecord:
    """Normalize one raw row into an unclassified record.

    Raises :class:`InvalidInputError` only when ``row`` is not a mapping;
    absent columns resolve to empty text or a zero amount.
    """

    if not isinstance(row, Mapping):
        raise InvalidInputError(f"expected a mapping row, got {type(row).__name__}")
    al = aliases or _DEFAULT_ALIASES

    date_val = resolve_field(row, al.date)
    narration_val = resolve_field(row, al.narration)
    reference_val = resolve_field(row, al.reference)
    parsed = parse_amount(resolve_field(row, al.amount))

    narration = _cell_text(narration_val)
    normalized = clean_narration(narration)
    keys = derive_keys(normalized, parsed.value, length=key_length)

    return TransactionRecord(
        record_id=record_id or "",
        date=_cell_text(date_val),
        narration=narration,
        normalized_narration=normalized,
        original_amount_text=parsed.original,
        signed_amount=parsed.value,
        is_negative=parsed.is_negative,
        first15=keys.first15,
        last15=keys.last15,
        helper_key1=keys.helper_key1,
        helper_key2=keys.helper_key2,
        reference=_cell_text(reference_val).strip(),
        side=side,
    )


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    side: Side | None,
    settings: ReconSettings | None = None,
    id_prefix: str | None = None,
) -> tuple[list[TransactionRecord], list[InvalidInput]]:
    """Normalize a batch of rows for one side of a run.

    Each record gets ``record_id = "<prefix>:<position>"`` where the prefix
    defaults to the side name and the position is the index in the input
    sequence. Rows that cannot be normalized are reported as
    :class:`InvalidInput` entries and skipped; the rest of the batch proceeds.
    """

    cfg = settings or ReconSettings()
    prefix = id_prefix or (str(side) if side is not None else "row")
    records: list[TransactionRecord] = []
    invalid: list[InvalidInput] = []

    for pos, row in enumerate(rows):
        try:
            rec = normalize_row(
                row,
                aliases=cfg.aliases,
                key_length=cfg.narration_key_length,
                side=side,
                record_id=f"{prefix}:{pos}",
            )
        except InvalidInputError as exc:
            _logger.warning("Skipping %s row %d: %s", prefix, pos, exc)
            invalid.append(InvalidInput(side=side, position=pos, reason=str(exc)))
            continue
        records.append(rec)

    _logger.debug("Normalized %d %s rows (%d skipped)", len(records), prefix, len(invalid))
    return records, invalid


__all__ = [
    "ParsedAmount",
    "resolve_field",
    "clean_narration",
    "parse_amount",
    "normalize_row",
    "normalize_rows",
]
