"""Notification model."""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class NotificationType(str, PyEnum):
    """Type tags carried by platform notifications."""

    BID_ACCEPTED = "bid_accepted"
    BID_CANCELLED = "bid_cancelled"
    PROJECT_CANCELLED = "project_cancelled"
    PROJECT_COMPLETED = "project_completed"
    PROJECT_UNCOMPLETED = "project_uncompleted"
    PAYMENT_SETTLEMENT_REQUEST = "payment_settlement_request"
    PAYMENT_ACCEPTED = "payment_accepted"
    ESCROW_FUNDS_RECEIVED = "escrow_funds_received"
    ESCROW_FUNDS_SENT = "escrow_funds_sent"
    ESCROW_WORK_COMPLETED = "escrow_work_completed"
    ESCROW_CLIENT_APPROVED_WORK = "escrow_client_approved_work"
    ESCROW_FUNDS_RELEASED = "escrow_funds_released"
    ESCROW_CANCELLED = "escrow_cancelled"
    DISPUTE_RAISED = "dispute_raised"
    DISPUTE_RAISED_AGAINST = "dispute_raised_against"
    DISPUTE_CLOSED = "dispute_closed"
    USER_SUSPENDED = "user_suspended"


class NotificationPriority(str, PyEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Action a recipient may take from a settlement request.
ACTION_REDIRECT_TO_BID = "redirect_to_bid_details"


class Notification(Base):
    """Append-only, per-recipient platform event."""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "(recipient_id IS NULL) != (recipient_role IS NULL)",
            name="ck_notification_single_recipient",
        ),
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        Index("ix_notifications_role_read", "recipient_role", "is_read"),
        Index("ix_notifications_created_at", "created_at"),
    )

    recipient_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    recipient_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=NotificationPriority.MEDIUM.value)
    project_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    escrow_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    bid_id: Mapped[int | None] = mapped_column(nullable=True)
    dispute_id: Mapped[int | None] = mapped_column(nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    action_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action_text: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action_resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def has_action(self) -> bool:
        return self.action_type is not None and self.action_resolved_at is None
