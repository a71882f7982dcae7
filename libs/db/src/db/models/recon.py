from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: recon_results
# ---------------------------


class ReconResult(Base):
    """One classified record from a reconciliation run.

    Rows are written once per run (``run_id``) and scoped to a branch; the
    pending report reads them back by ``status``/``side``.
    """

    __tablename__ = "recon_results"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    run_id: Mapped[str] = mapped_column(String(64), nullable=False)
    branch_code: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    record_id: Mapped[str | None] = mapped_column(String, nullable=True)
    # Source dates are kept verbatim; no parsing or timezone handling.
    date: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    narration: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    original_amount: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    reference: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    signed_amount: Mapped[float] = mapped_column(Float, nullable=False)
    is_negative: Mapped[bool] = mapped_column(Boolean, nullable=False)
    first15: Mapped[str] = mapped_column(Text, nullable=False)
    last15: Mapped[str] = mapped_column(Text, nullable=False)
    helper_key1: Mapped[str] = mapped_column(Text, nullable=False)
    helper_key2: Mapped[str] = mapped_column(Text, nullable=False)
    side: Mapped[str | None] = mapped_column(String(8), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    matched_with: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "side IS NULL OR side in ('debit','credit')",
            name="ck_recon_results_side",
        ),
        CheckConstraint(
            "status in ('unclassified','matched','pending_debit','pending_credit',"
            "'pending_post','mismatch','duplicate')",
            name="ck_recon_results_status",
        ),
        Index("ix_recon_results_branch_status", "branch_code", "status"),
        Index("ix_recon_results_run", "run_id"),
    )


__all__ = [
    "Base",
    "ReconResult",
]
