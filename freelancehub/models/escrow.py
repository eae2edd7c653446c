"""Escrow related models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, status_enum


class EscrowStatus(str, PyEnum):
    """Custody status of escrowed funds."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    READY_FOR_RELEASE = "ready_for_release"
    RELEASED = "released"
    CANCELLED = "cancelled"


LIVE_ESCROW_STATUSES = frozenset(
    {EscrowStatus.PENDING, EscrowStatus.IN_PROGRESS, EscrowStatus.READY_FOR_RELEASE}
)


class Escrow(Base):
    """Funds held for one accepted bid until an administrator releases them."""

    __tablename__ = "escrows"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_escrow_amount_positive"),
        Index("ix_escrows_status", "status"),
        Index(
            "uq_escrows_project_not_cancelled",
            "project_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False, index=True)
    bid_id: Mapped[int | None] = mapped_column(ForeignKey("bids.id", ondelete="SET NULL"), nullable=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    freelancer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    project_title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EscrowStatus] = mapped_column(
        status_enum(EscrowStatus, "escrowstatus"), default=EscrowStatus.PENDING, nullable=False
    )
    client_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
