"""Escrow schemas."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from freelancehub.models.escrow import EscrowStatus

from .notification import NotificationRead


class EscrowFund(BaseModel):
    project_id: int
    bid_id: int
    # Defaults to the accepted bid's amount; a different value is rejected.
    amount: Decimal | None = None
    notes: str = ""


class EscrowAdvance(BaseModel):
    status: EscrowStatus
    notes: str | None = None


class EscrowRead(BaseModel):
    id: int
    project_id: int
    bid_id: int | None
    client_id: int
    freelancer_id: int
    amount: Decimal
    project_title: str
    status: EscrowStatus
    client_approved_at: datetime | None
    admin_released_at: datetime | None
    notes: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EscrowActionRead(BaseModel):
    escrow: EscrowRead
    notifications: list[NotificationRead] = Field(default_factory=list)


class EscrowStatistics(BaseModel):
    total: int
    by_status: dict[str, int]
    total_amount: Decimal
    held_amount: Decimal
    released_amount: Decimal
    unread_notifications: int
