"""User schemas."""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr

from freelancehub.models.user import UserRole


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    role: UserRole
    is_active: bool = True


class UserRead(BaseModel):
    id: int
    username: str
    email: EmailStr
    role: UserRole
    is_active: bool
    rating: Decimal

    model_config = ConfigDict(from_attributes=True)


class SuspensionRead(BaseModel):
    user: UserRead
    notified_user_ids: list[int]
