"""Client reviews of freelancers."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from freelancehub.models.project import ProjectStatus
from freelancehub.models.review import Review
from freelancehub.models.user import User, UserRole
from freelancehub.schemas.review import ReviewCreate
from freelancehub.security import Principal, require_role
from freelancehub.services import projects as project_service
from freelancehub.services.uow import unit_of_work
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import NotFound, PreconditionFailed, ValidationFailed

logger = logging.getLogger(__name__)

RATING_PLACES = Decimal("0.01")


def mean_rating(db: Session, freelancer_id: int) -> Decimal:
    """Simple mean of every rating the freelancer has received."""

    value = db.scalar(select(func.avg(Review.rating)).where(Review.freelancer_id == freelancer_id))
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(RATING_PLACES, rounding=ROUND_HALF_UP)


def create_review(db: Session, principal: Principal, payload: ReviewCreate) -> tuple[Review, Decimal]:
    """Record a review; only clients who closed a project with the freelancer may write one."""

    require_role(principal, UserRole.CLIENT, action="review freelancers")
    if not 1 <= payload.rating <= 5:
        raise ValidationFailed("Rating must be between 1 and 5.", details={"rating": payload.rating})
    comment = (payload.comment or "").strip()
    if not comment:
        raise ValidationFailed("Review comment is required.", details={"field": "comment"})

    freelancer = db.get(User, payload.freelancer_id)
    if freelancer is None or freelancer.role != UserRole.FREELANCER:
        raise NotFound("Freelancer not found.", details={"freelancer_id": payload.freelancer_id})
    if not project_service.has_closed_project(db, principal.id, freelancer.id):
        raise PreconditionFailed(
            "You can only review freelancers you have completed a project with.",
            details={"freelancer_id": freelancer.id},
        )
    if payload.project_id is not None:
        project = project_service.get_project(db, payload.project_id)
        if (
            project.client_id != principal.id
            or project.freelancer_id != freelancer.id
            or project.status != ProjectStatus.CLOSED
        ):
            raise PreconditionFailed(
                "Project is not a closed project between you and this freelancer.",
                details={"project_id": project.id},
            )

    review = Review(
        project_id=payload.project_id,
        client_id=principal.id,
        freelancer_id=freelancer.id,
        rating=payload.rating,
        comment=comment,
    )
    with unit_of_work(db):
        db.add(review)
        db.flush()
        freelancer.rating = mean_rating(db, freelancer.id)
        log_audit(
            db,
            actor=actor_label(principal),
            action="REVIEW_CREATED",
            entity="Review",
            entity_id=review.id,
            data={"freelancer_id": freelancer.id, "rating": payload.rating},
        )
    db.refresh(review)
    logger.info(
        "Review created",
        extra={"review_id": review.id, "freelancer_id": freelancer.id, "rating": str(freelancer.rating)},
    )
    return review, freelancer.rating


def list_reviews(db: Session, freelancer_id: int) -> list[Review]:
    stmt = select(Review).where(Review.freelancer_id == freelancer_id)
    return list(db.scalars(stmt.order_by(Review.created_at.desc(), Review.id.desc())).all())


__all__ = ["create_review", "list_reviews", "mean_rating"]
