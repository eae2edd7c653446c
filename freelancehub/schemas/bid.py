"""Bid schemas."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from freelancehub.models.bid import BidStatus

from .notification import NotificationRead
from .project import ProjectRead


class BidCreate(BaseModel):
    amount: Decimal
    timeline: str
    proposal: str


class BidUpdate(BaseModel):
    amount: Decimal | None = None
    timeline: str | None = None
    proposal: str | None = None


class BidRead(BaseModel):
    id: int
    project_id: int
    freelancer_id: int
    amount: Decimal
    timeline: str
    proposal: str
    status: BidStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BidAcceptRead(BaseModel):
    bid: BidRead
    project: ProjectRead
    notifications: list[NotificationRead] = Field(default_factory=list)


class BidWithdrawRead(BaseModel):
    bid_id: int
    project: ProjectRead
    notifications: list[NotificationRead] = Field(default_factory=list)
