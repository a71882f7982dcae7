"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the reconciliation results table used by ``ledger_recon``.
"""

from .recon import Base, ReconResult

__all__ = [
    "Base",
    "ReconResult",
]
