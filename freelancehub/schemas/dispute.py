"""Dispute schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from freelancehub.models.dispute import DisputeStatus
from freelancehub.models.user import UserRole

from .notification import NotificationRead


class DisputeCreate(BaseModel):
    project_id: int
    description: str


class DisputeRead(BaseModel):
    id: int
    project_id: int
    project_title: str
    raiser_id: int
    raiser_role: UserRole
    other_party_id: int
    other_party_role: UserRole
    description: str
    status: DisputeStatus
    is_read_by_admin: bool
    closed_by_id: int | None
    closed_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DisputeActionRead(BaseModel):
    dispute: DisputeRead
    notifications: list[NotificationRead] = Field(default_factory=list)
