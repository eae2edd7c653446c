"""Bid model."""
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, status_enum


class BidStatus(str, PyEnum):
    """Status of a freelancer's bid."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Bid(Base):
    """A freelancer's offer on a project."""

    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("project_id", "freelancer_id", name="uq_bid_project_freelancer"),
        CheckConstraint("amount > 0", name="ck_bid_amount_positive"),
    )

    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    freelancer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    timeline: Mapped[str] = mapped_column(String(255), nullable=False)
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[BidStatus] = mapped_column(
        status_enum(BidStatus, "bidstatus"), default=BidStatus.PENDING, nullable=False
    )

    project = relationship("Project", back_populates="bids")
