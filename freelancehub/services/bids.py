"""Bid store and the bid-side lifecycle commands."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from freelancehub.models.bid import Bid, BidStatus
from freelancehub.models.escrow import EscrowStatus
from freelancehub.models.notification import NotificationPriority, NotificationType
from freelancehub.models.project import Project, ProjectStatus
from freelancehub.models.user import UserRole
from freelancehub.schemas.bid import BidCreate, BidUpdate
from freelancehub.security import Principal, require_role
from freelancehub.services import projects as project_service
from freelancehub.services.notifications import (
    ActionResult,
    NotificationDraft,
    Recipient,
    dispatch,
    resolve_settlement_requests,
)
from freelancehub.services.state_machine import (
    EDITABLE_BID_STATUSES,
    WITHDRAWABLE_BID_STATUSES,
    ProjectAction,
    can_transition_bid,
)
from freelancehub.services.uow import swap_status, unit_of_work
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import Conflict, Forbidden, NotFound, PreconditionFailed, ValidationFailed
from freelancehub.utils.money import to_decimal

logger = logging.getLogger(__name__)


def _validate_amount(value: Any, project: Project) -> Decimal:
    amount = to_decimal(value)
    if amount <= 0:
        raise ValidationFailed("Bid amount must be greater than zero.", details={"amount": str(amount)})
    if amount > project.budget:
        raise ValidationFailed(
            "Bid amount cannot exceed the project budget.",
            details={"amount": str(amount), "budget": str(project.budget)},
        )
    return amount


def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailed(f"{field} is required.", details={"field": field})
    return text


def get_bid(db: Session, bid_id: int) -> Bid:
    bid = db.get(Bid, bid_id)
    if bid is None:
        raise NotFound("Bid not found.", details={"bid_id": bid_id})
    return bid


def get_visible_bid(db: Session, principal: Principal, bid_id: int) -> Bid:
    """Return a bid its freelancer, the project's client or an admin may see."""

    bid = get_bid(db, bid_id)
    if principal.is_admin or bid.freelancer_id == principal.id:
        return bid
    project = project_service.get_project(db, bid.project_id)
    if project.client_id != principal.id:
        raise Forbidden("Bid is not visible to this principal.", details={"bid_id": bid_id})
    return bid


def list_bids_for_project(db: Session, principal: Principal, project_id: int) -> list[Bid]:
    project = project_service.get_project(db, project_id)
    stmt = select(Bid).where(Bid.project_id == project.id)
    if principal.role == UserRole.FREELANCER:
        stmt = stmt.where(Bid.freelancer_id == principal.id)
    elif not principal.is_admin and project.client_id != principal.id:
        raise Forbidden("Only the project owner can list its bids.", details={"project_id": project_id})
    return list(db.scalars(stmt.order_by(Bid.created_at.asc(), Bid.id.asc())).all())


def list_bids_for_freelancer(db: Session, principal: Principal, freelancer_id: int) -> list[Bid]:
    if not principal.is_admin and principal.id != freelancer_id:
        raise Forbidden("Freelancers can only list their own bids.", details={"freelancer_id": freelancer_id})
    stmt = select(Bid).where(Bid.freelancer_id == freelancer_id).order_by(Bid.created_at.desc(), Bid.id.desc())
    return list(db.scalars(stmt).all())


def _bid_exists(db: Session, project_id: int, freelancer_id: int) -> bool:
    stmt = select(Bid.id).where(Bid.project_id == project_id, Bid.freelancer_id == freelancer_id)
    return db.scalars(stmt.limit(1)).first() is not None


def create_bid(db: Session, principal: Principal, project_id: int, payload: BidCreate) -> Bid:
    """Place the calling freelancer's single bid on an open project."""

    require_role(principal, UserRole.FREELANCER, action="place bids")
    project = project_service.get_project(db, project_id)
    if project.status != ProjectStatus.OPEN:
        raise PreconditionFailed(
            "Bids can only be placed on open projects.",
            details={"project_id": project.id, "status": project.status.value},
        )
    amount = _validate_amount(payload.amount, project)
    timeline = _require_text(payload.timeline, "timeline")
    proposal = _require_text(payload.proposal, "proposal")
    if _bid_exists(db, project.id, principal.id):
        raise Conflict("You have already bid on this project.", details={"project_id": project.id})

    bid = Bid(
        project_id=project.id,
        freelancer_id=principal.id,
        amount=amount,
        timeline=timeline,
        proposal=proposal,
        status=BidStatus.PENDING,
    )
    try:
        with unit_of_work(db):
            db.add(bid)
            db.flush()
            log_audit(
                db,
                actor=actor_label(principal),
                action="BID_CREATED",
                entity="Bid",
                entity_id=bid.id,
                data={"project_id": project.id, "amount": str(amount)},
            )
    except IntegrityError as exc:
        raise Conflict("You have already bid on this project.", details={"project_id": project.id}) from exc
    db.refresh(bid)
    logger.info("Bid created", extra={"bid_id": bid.id, "project_id": project.id})
    return bid


def update_bid(db: Session, principal: Principal, bid_id: int, payload: BidUpdate) -> Bid:
    """Edit a pending bid; the amount is checked against the current budget."""

    require_role(principal, UserRole.FREELANCER, action="edit bids")
    bid = get_bid(db, bid_id)
    if bid.freelancer_id != principal.id:
        raise Forbidden("Bid belongs to another freelancer.", details={"bid_id": bid.id})
    if bid.status not in EDITABLE_BID_STATUSES:
        raise PreconditionFailed(
            f"A {bid.status.value} bid cannot be edited.",
            details={"bid_id": bid.id, "status": bid.status.value},
        )
    project = project_service.get_project(db, bid.project_id)

    changes = payload.model_dump(exclude_unset=True)
    values: dict[str, Any] = {}
    if "amount" in changes:
        values["amount"] = _validate_amount(changes["amount"], project)
    if "timeline" in changes:
        values["timeline"] = _require_text(changes["timeline"], "timeline")
    if "proposal" in changes:
        values["proposal"] = _require_text(changes["proposal"], "proposal")

    with unit_of_work(db):
        if values and not swap_status(db, Bid, bid.id, list(EDITABLE_BID_STATUSES), **values):
            raise PreconditionFailed("Bid was modified by another request.", details={"bid_id": bid.id})
        log_audit(
            db,
            actor=actor_label(principal),
            action="BID_UPDATED",
            entity="Bid",
            entity_id=bid.id,
            data={"fields": sorted(values), "amount": str(values.get("amount", bid.amount))},
        )
    db.refresh(bid)
    logger.info("Bid updated", extra={"bid_id": bid.id, "fields": sorted(values)})
    return bid


def accept_bid(db: Session, principal: Principal, bid_id: int) -> ActionResult[Bid]:
    """Assign the project to the bid's freelancer and reject every other bid."""

    require_role(principal, UserRole.CLIENT, action="accept bids")
    bid = get_bid(db, bid_id)
    project = project_service.get_project(db, bid.project_id)
    project_service.ensure_owner(project, principal)
    if not can_transition_bid(bid.status, BidStatus.ACCEPTED):
        raise PreconditionFailed(
            f"A {bid.status.value} bid cannot be accepted.",
            details={"bid_id": bid.id, "status": bid.status.value},
        )
    if project.status != ProjectStatus.OPEN:
        raise PreconditionFailed(
            "Bids can only be accepted on open projects.",
            details={"project_id": project.id, "status": project.status.value},
        )

    with unit_of_work(db):
        project_service.move_project(
            db, project, ProjectAction.ACCEPT_BID, principal.role, freelancer_id=bid.freelancer_id
        )
        if not swap_status(db, Bid, bid.id, [bid.status], status=BidStatus.ACCEPTED):
            raise PreconditionFailed("Bid was modified by another request.", details={"bid_id": bid.id})
        rejected = project_service.move_bids(
            db, project.id, frozenset({BidStatus.PENDING}), BidStatus.REJECTED, exclude_bid_id=bid.id
        )
        log_audit(
            db,
            actor=actor_label(principal),
            action="BID_ACCEPTED",
            entity="Bid",
            entity_id=bid.id,
            data={"project_id": project.id, "freelancer_id": bid.freelancer_id, "rejected": rejected},
        )
    db.expire_all()
    db.refresh(bid)

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(bid.freelancer_id),
            type=NotificationType.BID_ACCEPTED,
            content=f"Your bid on '{project.title}' was accepted.",
            priority=NotificationPriority.HIGH,
            project_id=project.id,
            bid_id=bid.id,
        )
    ]
    logger.info(
        "Bid accepted",
        extra={"bid_id": bid.id, "project_id": project.id, "rejected": rejected},
    )
    return ActionResult(bid, dispatch(db, drafts))


def withdraw_bid(db: Session, principal: Principal, bid_id: int) -> ActionResult[Project]:
    """Delete the caller's bid. Withdrawing an accepted bid reopens bidding."""

    require_role(principal, UserRole.FREELANCER, action="withdraw bids")
    bid = get_bid(db, bid_id)
    if bid.freelancer_id != principal.id:
        raise Forbidden("Bid belongs to another freelancer.", details={"bid_id": bid.id})
    if bid.status not in WITHDRAWABLE_BID_STATUSES:
        raise PreconditionFailed(
            f"A {bid.status.value} bid cannot be withdrawn.",
            details={"bid_id": bid.id, "status": bid.status.value},
        )
    project = project_service.get_project(db, bid.project_id)
    was_accepted = bid.status == BidStatus.ACCEPTED
    escrow = None
    reset = 0

    with unit_of_work(db):
        if was_accepted:
            project_service.move_project(
                db,
                project,
                ProjectAction.WITHDRAW_ACCEPTED_BID,
                principal.role,
                freelancer_id=None,
                completed_at=None,
            )
            escrow = project_service.cancel_live_escrow(
                db, project.id, note="Accepted bid withdrawn by the freelancer."
            )
            resolve_settlement_requests(db, project.id)
        db.delete(bid)
        db.flush()
        if was_accepted:
            reset = project_service.move_bids(db, project.id, frozenset({BidStatus.REJECTED}), BidStatus.PENDING)
        log_audit(
            db,
            actor=actor_label(principal),
            action="BID_WITHDRAWN",
            entity="Bid",
            entity_id=bid_id,
            data={
                "project_id": project.id,
                "was_accepted": was_accepted,
                "bids_reset": reset,
                "escrow_id": escrow.id if escrow else None,
            },
        )
    db.expire_all()
    db.refresh(project)

    drafts: list[NotificationDraft] = []
    if was_accepted:
        drafts.append(
            NotificationDraft(
                recipient=Recipient.user(project.client_id),
                type=NotificationType.BID_CANCELLED,
                content=f"The freelancer withdrew from '{project.title}'. The project is open for bids again.",
                priority=NotificationPriority.HIGH,
                project_id=project.id,
            )
        )
    if escrow is not None:
        drafts.extend(project_service.escrow_drafts(escrow, EscrowStatus.CANCELLED))
    logger.info(
        "Bid withdrawn",
        extra={"bid_id": bid_id, "project_id": project.id, "was_accepted": was_accepted},
    )
    return ActionResult(project, dispatch(db, drafts))


__all__ = [
    "accept_bid",
    "create_bid",
    "get_bid",
    "get_visible_bid",
    "list_bids_for_freelancer",
    "list_bids_for_project",
    "update_bid",
    "withdraw_bid",
]
