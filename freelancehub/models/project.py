"""Project model."""
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, status_enum


class ProjectStatus(str, PyEnum):
    """Lifecycle status of a project."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    CANCELLED = "cancelled"


# A freelancer is assigned exactly while the project is in one of these states.
ASSIGNED_STATUSES = frozenset(
    {ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED, ProjectStatus.CLOSED}
)


class Project(Base):
    """A unit of work posted by a client."""

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("budget > 0", name="ck_project_budget_positive"),
        Index("ix_projects_status", "status"),
        Index("ix_projects_client_freelancer", "client_id", "freelancer_id"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    required_skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        status_enum(ProjectStatus, "projectstatus"), default=ProjectStatus.OPEN, nullable=False
    )
    client_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    freelancer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    bids = relationship("Bid", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)
