"""Conversation schemas."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class MessageCreate(BaseModel):
    recipient_id: int
    content: str


class MessageRead(BaseModel):
    id: int
    project_id: int
    sender_id: int
    recipient_id: int
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ThreadItem(BaseModel):
    kind: Literal["message", "notification"]
    id: int
    content: str
    sender_id: int | None = None
    type: str | None = None
    created_at: datetime
