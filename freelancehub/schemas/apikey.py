"""API key schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ApiKeyCreate(BaseModel):
    name: str
    user_id: int
    days_valid: int | None = None


class ApiKeyRead(BaseModel):
    id: int
    name: str
    prefix: str
    user_id: int
    is_active: bool
    expires_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApiKeyCreateOut(ApiKeyRead):
    key: str
