"""Exception types raised by the reconciliation engine and its adapters."""

from __future__ import annotations


class ReconError(Exception):
    """Base class for all ``ledger_recon`` errors."""


class InvalidInputError(ReconError, ValueError):
    """A single record or row is unusable (e.g. ``None`` where a record is required).

    Batch operations catch this per item, record an ``InvalidInput`` entry and
    continue with the rest of the batch.
    """


class InvalidTransitionError(ReconError):
    """A status change would violate the one-directional record lifecycle."""


class SpreadsheetError(ReconError):
    """A source file could not be read as a table of rows."""


class PersistenceError(ReconError):
    """The record store rejected a write or query."""


__all__ = [
    "ReconError",
    "InvalidInputError",
    "InvalidTransitionError",
    "SpreadsheetError",
    "PersistenceError",
]
