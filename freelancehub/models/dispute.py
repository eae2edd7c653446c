"""Dispute model."""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, status_enum
from .user import UserRole


class DisputeStatus(str, PyEnum):
    PENDING = "pending"
    CLOSED = "closed"


class Dispute(Base):
    """Disagreement between a project's client and freelancer, arbitrated by an admin."""

    __tablename__ = "disputes"

    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False, index=True)
    project_title: Mapped[str] = mapped_column(String(255), nullable=False)
    raiser_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    raiser_role: Mapped[UserRole] = mapped_column(status_enum(UserRole, "userrole"), nullable=False)
    other_party_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    other_party_role: Mapped[UserRole] = mapped_column(status_enum(UserRole, "userrole"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[DisputeStatus] = mapped_column(
        status_enum(DisputeStatus, "disputestatus"), default=DisputeStatus.PENDING, nullable=False, index=True
    )
    is_read_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    closed_by_id: Mapped[int | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
