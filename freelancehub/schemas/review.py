"""Review schemas."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class ReviewCreate(BaseModel):
    freelancer_id: int
    rating: int
    comment: str
    project_id: int | None = None


class ReviewRead(BaseModel):
    id: int
    project_id: int | None
    client_id: int
    freelancer_id: int
    rating: int
    comment: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewCreated(BaseModel):
    review: ReviewRead
    freelancer_rating: Decimal
