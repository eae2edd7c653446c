"""Notification schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    id: int
    recipient_id: int | None
    recipient_role: str | None
    type: str
    content: str
    priority: str
    project_id: int | None
    escrow_id: int | None
    bid_id: int | None
    dispute_id: int | None
    is_read: bool
    read_at: datetime | None
    action_type: str | None
    action_text: str | None
    action_resolved_at: datetime | None
    has_action: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkAllReadPayload(BaseModel):
    type_prefix: str | None = None
    escrow_id: int | None = None
    # Admins may clear the role-wide inbox instead of their personal one.
    admin_inbox: bool = False


class MarkAllReadResult(BaseModel):
    updated: int


class UnreadCounts(BaseModel):
    notifications: int
    escrow_notifications: int
    disputes: int
