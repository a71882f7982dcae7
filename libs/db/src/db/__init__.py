"""db: shared database library (SQLAlchemy record store).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ORM models in ``db.models.recon`` (re-exported for convenience)
- Engine/session helpers in ``db.client``
"""

from __future__ import annotations

from .models.recon import Base, ReconResult

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "ReconResult",
]
