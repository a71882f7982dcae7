"""Helper-key derivation from narration fragments and amount.

Two keys exist because truncated narrations collide in two different ways:
common prefixes ("TRANSFER TO ...") defeat the first-characters key, common
suffixes ("...REF12345") defeat the last-characters key. Trying both widens
recall without needing one perfect key.

Keys are pure functions of ``(normalized_narration, signed_amount)`` and the
slice length, so re-running normalization on the same input always yields the
same keys.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from .config import DEFAULT_NARRATION_KEY_LENGTH


class NarrationKeys(NamedTuple):
    first15: str
    last15: str
    helper_key1: str
    helper_key2: str


def format_key_amount(value: float) -> str:
    """Render an amount for use inside a helper key.

    Integral values print without a decimal part (``1000``, ``-500``) and other
    values use the shortest round-trip form (``12.5``), so ``"1,000.00"`` and
    ``"1000"`` produce the same key. Negative zero prints as ``0``.
    """

    if not math.isfinite(value):
        return repr(value)
    if value == 0:
        return "0"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def derive_keys(
    normalized_narration: str,
    signed_amount: float,
    *,
    length: int = DEFAULT_NARRATION_KEY_LENGTH,
) -> NarrationKeys:
    """Return the first/last narration slices and both helper keys.

    Narrations shorter than ``length`` yield the whole (uppercased, trimmed)
    string for both slices. An empty narration gives
    ``helper_key1 == helper_key2 == "_" + amount``, which degrades matching to
    amount-only for that record.
    """

    if length <= 0:
        raise ValueError("length must be a positive integer")
    first = normalized_narration[:length].upper().strip()
    last = normalized_narration[-length:].upper().strip()
    amount = format_key_amount(float(signed_amount))
    return NarrationKeys(
        first15=first,
        last15=last,
        helper_key1=f"{first}_{amount}",
        helper_key2=f"{last}_{amount}",
    )


__all__ = ["NarrationKeys", "format_key_amount", "derive_keys"]
