"""Review endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.review import Review
from freelancehub.schemas.review import ReviewCreate, ReviewCreated, ReviewRead
from freelancehub.security import Principal, require_principal
from freelancehub.services import reviews as review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewCreated, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ReviewCreated:
    review, rating = review_service.create_review(db, principal, payload)
    return ReviewCreated(review=ReviewRead.model_validate(review), freelancer_rating=rating)


@router.get("", response_model=list[ReviewRead])
def list_reviews(
    freelancer_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Review]:
    return review_service.list_reviews(db, freelancer_id)
