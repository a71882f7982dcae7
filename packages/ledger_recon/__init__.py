"""Public interface for the ``ledger_recon`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    ReconciliationResult,
    ReconciliationSummary,
    TicketReconciliationResult,
    TicketSummary,
    reconcile_ledgers,
    reconcile_tickets,
)
from .config import FieldAliases, ReconSettings, load_settings
from .duplicates import flag_duplicates
from .errors import (
    InvalidInputError,
    InvalidTransitionError,
    PersistenceError,
    ReconError,
    SpreadsheetError,
)
from .fuzzy import FuzzyMatcher, FuzzyOutcome, FuzzyVerdict
from .indexer import CandidateIndex
from .keys import NarrationKeys, derive_keys
from .matcher import MatchOutcome, match_records
from .models import (
    ExportRow,
    InvalidInput,
    MatchedPair,
    RawRow,
    Side,
    Status,
    TransactionRecord,
)
from .normalizers import normalize_row, normalize_rows, parse_amount

__all__ = [
    # API
    "reconcile_ledgers",
    "reconcile_tickets",
    "ReconciliationResult",
    "ReconciliationSummary",
    "TicketReconciliationResult",
    "TicketSummary",
    # Engine
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "derive_keys",
    "NarrationKeys",
    "CandidateIndex",
    "match_records",
    "MatchOutcome",
    "FuzzyMatcher",
    "FuzzyOutcome",
    "FuzzyVerdict",
    "flag_duplicates",
    # Models / types
    "RawRow",
    "Side",
    "Status",
    "TransactionRecord",
    "InvalidInput",
    "MatchedPair",
    "ExportRow",
    # Settings
    "ReconSettings",
    "FieldAliases",
    "load_settings",
    # Errors
    "ReconError",
    "InvalidInputError",
    "InvalidTransitionError",
    "SpreadsheetError",
    "PersistenceError",
]
