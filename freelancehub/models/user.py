"""User model."""
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, status_enum


class UserRole(str, PyEnum):
    """Role carried by every principal."""

    CLIENT = "client"
    FREELANCER = "freelancer"
    ADMIN = "admin"


class User(Base):
    """Represents a FreelanceHub account."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(status_enum(UserRole, "userrole"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0"), nullable=False)
