"""Escrow ledger: custody of funds for an accepted bid."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from freelancehub.config import ADMIN_RECIPIENT, get_settings
from freelancehub.models.bid import Bid, BidStatus
from freelancehub.models.escrow import LIVE_ESCROW_STATUSES, Escrow, EscrowStatus
from freelancehub.models.notification import Notification, NotificationPriority, NotificationType
from freelancehub.models.project import ProjectStatus
from freelancehub.models.user import UserRole
from freelancehub.schemas.escrow import EscrowAdvance, EscrowFund
from freelancehub.security import Principal, require_role
from freelancehub.services import projects as project_service
from freelancehub.services.notifications import (
    ESCROW_TYPE_PREFIX,
    ActionResult,
    NotificationDraft,
    Recipient,
    dispatch,
    pending_settlement_request,
)
from freelancehub.services.state_machine import FUNDABLE_PROJECT_STATUSES, escrow_transition
from freelancehub.services.uow import swap_status, unit_of_work
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import Conflict, Forbidden, NotFound, PreconditionFailed, ValidationFailed
from freelancehub.utils.money import to_decimal
from freelancehub.utils.time import utcnow

logger = logging.getLogger(__name__)


def get_escrow(db: Session, escrow_id: int) -> Escrow:
    escrow = db.get(Escrow, escrow_id)
    if escrow is None:
        raise NotFound("Escrow not found.", details={"escrow_id": escrow_id})
    return escrow


def get_visible_escrow(db: Session, principal: Principal, escrow_id: int) -> Escrow:
    escrow = get_escrow(db, escrow_id)
    if not principal.is_admin and principal.id not in (escrow.client_id, escrow.freelancer_id):
        raise Forbidden("Escrow is not visible to this principal.", details={"escrow_id": escrow_id})
    return escrow


def list_escrows(
    db: Session,
    principal: Principal,
    *,
    status: EscrowStatus | None = None,
    project_id: int | None = None,
) -> list[Escrow]:
    """Admins see every escrow; clients and freelancers see their own."""

    stmt = select(Escrow)
    if principal.role == UserRole.CLIENT:
        stmt = stmt.where(Escrow.client_id == principal.id)
    elif principal.role == UserRole.FREELANCER:
        stmt = stmt.where(Escrow.freelancer_id == principal.id)
    if status is not None:
        stmt = stmt.where(Escrow.status == status)
    if project_id is not None:
        stmt = stmt.where(Escrow.project_id == project_id)
    return list(db.scalars(stmt.order_by(Escrow.created_at.desc(), Escrow.id.desc())).all())


def fund_escrow(db: Session, principal: Principal, payload: EscrowFund) -> ActionResult[Escrow]:
    """Lock the accepted bid's amount in a new pending escrow."""

    require_role(principal, UserRole.CLIENT, action="fund escrows")
    project = project_service.get_project(db, payload.project_id)
    project_service.ensure_owner(project, principal)
    if project.status not in FUNDABLE_PROJECT_STATUSES:
        raise PreconditionFailed(
            f"A {project.status.value} project cannot be funded through escrow.",
            details={"project_id": project.id, "status": project.status.value},
        )
    bid = db.get(Bid, payload.bid_id)
    if bid is None:
        raise NotFound("Bid not found.", details={"bid_id": payload.bid_id})
    if bid.project_id != project.id:
        raise PreconditionFailed(
            "Bid does not belong to this project.",
            details={"bid_id": bid.id, "project_id": project.id},
        )
    if bid.status != BidStatus.ACCEPTED:
        raise PreconditionFailed(
            "Only an accepted bid can be funded.",
            details={"bid_id": bid.id, "status": bid.status.value},
        )
    if project_service.has_open_escrow(db, project.id):
        raise Conflict("An escrow already exists for this project.", details={"project_id": project.id})
    if pending_settlement_request(db, project.id) is not None:
        raise Conflict(
            "Project has a pending direct settlement; it cannot also be paid through escrow.",
            details={"project_id": project.id},
        )
    if payload.amount is not None and to_decimal(payload.amount) != bid.amount:
        raise ValidationFailed(
            "Escrow amount must equal the accepted bid amount.",
            details={"amount": str(payload.amount), "bid_amount": str(bid.amount)},
        )

    escrow = Escrow(
        project_id=project.id,
        bid_id=bid.id,
        client_id=project.client_id,
        freelancer_id=bid.freelancer_id,
        amount=bid.amount,
        project_title=project.title,
        status=EscrowStatus.PENDING,
        notes=(payload.notes or "").strip(),
    )
    try:
        with unit_of_work(db):
            db.add(escrow)
            db.flush()
            log_audit(
                db,
                actor=actor_label(principal),
                action="ESCROW_FUNDED",
                entity="Escrow",
                entity_id=escrow.id,
                data={"project_id": project.id, "bid_id": bid.id, "amount": str(escrow.amount)},
            )
    except IntegrityError as exc:
        raise Conflict("An escrow already exists for this project.", details={"project_id": project.id}) from exc
    db.refresh(escrow)

    amount = get_settings().format_amount(escrow.amount)
    common: dict[str, Any] = {"project_id": project.id, "escrow_id": escrow.id, "bid_id": bid.id}
    drafts = [
        NotificationDraft(
            recipient=Recipient.admin(),
            type=NotificationType.ESCROW_FUNDS_RECEIVED,
            content=f"{amount} received in escrow for '{project.title}'.",
            priority=NotificationPriority.HIGH,
            **common,
        ),
        NotificationDraft(
            recipient=Recipient.user(bid.freelancer_id),
            type=NotificationType.ESCROW_FUNDS_SENT,
            content=f"The client secured {amount} in escrow for '{project.title}'.",
            **common,
        ),
    ]
    logger.info(
        "Escrow funded",
        extra={"escrow_id": escrow.id, "project_id": project.id, "amount": str(escrow.amount)},
    )
    return ActionResult(escrow, dispatch(db, drafts))


def _check_party(escrow: Escrow, principal: Principal, target: EscrowStatus) -> None:
    if principal.is_admin:
        return
    if target == EscrowStatus.IN_PROGRESS and principal.id != escrow.freelancer_id:
        raise Forbidden("Only the escrow's freelancer can start the work.", details={"escrow_id": escrow.id})
    if target in (EscrowStatus.READY_FOR_RELEASE, EscrowStatus.CANCELLED) and principal.id != escrow.client_id:
        raise Forbidden("Escrow belongs to another client.", details={"escrow_id": escrow.id})


def advance_escrow(
    db: Session, principal: Principal, escrow_id: int, payload: EscrowAdvance
) -> ActionResult[Escrow]:
    """Move an escrow along one legal edge; releasing also closes the project."""

    escrow = get_escrow(db, escrow_id)
    current = escrow.status
    target = escrow_transition(current, payload.status, principal.role)
    _check_party(escrow, principal, target)

    project = project_service.get_project(db, escrow.project_id)
    if target == EscrowStatus.READY_FOR_RELEASE and project.status != ProjectStatus.COMPLETED:
        raise PreconditionFailed(
            "Work can only be approved once the project is completed.",
            details={"project_id": project.id, "status": project.status.value},
        )

    values: dict[str, Any] = {"status": target}
    if payload.notes:
        values["notes"] = project_service.append_note(escrow.notes, payload.notes.strip())
    if target == EscrowStatus.READY_FOR_RELEASE:
        values["client_approved_at"] = utcnow()
    elif target == EscrowStatus.RELEASED:
        values["admin_released_at"] = utcnow()

    with unit_of_work(db):
        if not swap_status(db, Escrow, escrow.id, [current], **values):
            raise PreconditionFailed(
                "Escrow was modified by another request.",
                details={"escrow_id": escrow.id, "expected_status": current.value},
            )
        if target == EscrowStatus.RELEASED:
            project_service.close_by_admin(db, project, principal.role)
        log_audit(
            db,
            actor=actor_label(principal),
            action="ESCROW_STATUS_CHANGED",
            entity="Escrow",
            entity_id=escrow.id,
            data={"from": current.value, "to": target.value, "project_id": project.id},
        )
    db.refresh(escrow)

    logger.info(
        "Escrow advanced",
        extra={"escrow_id": escrow.id, "from_status": current.value, "status": target.value},
    )
    return ActionResult(escrow, dispatch(db, project_service.escrow_drafts(escrow, target)))


def escrow_statistics(db: Session, principal: Principal) -> dict[str, Any]:
    """Admin dashboard figures: counts per status and the amounts involved."""

    require_role(principal, UserRole.ADMIN, action="view escrow statistics")
    rows = db.execute(
        select(Escrow.status, func.count(Escrow.id), func.coalesce(func.sum(Escrow.amount), 0)).group_by(
            Escrow.status
        )
    ).all()
    by_status = {status.value: 0 for status in EscrowStatus}
    total_amount = Decimal("0")
    held_amount = Decimal("0")
    released_amount = Decimal("0")
    for status, count, amount in rows:
        amount = to_decimal(amount)
        by_status[status.value] = int(count)
        if status != EscrowStatus.CANCELLED:
            total_amount += amount
        if status in LIVE_ESCROW_STATUSES:
            held_amount += amount
        elif status == EscrowStatus.RELEASED:
            released_amount += amount

    unread = db.scalar(
        select(func.count(Notification.id)).where(
            Notification.recipient_role == ADMIN_RECIPIENT,
            Notification.is_read.is_(False),
            Notification.type.startswith(ESCROW_TYPE_PREFIX, autoescape=True),
        )
    )
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "total_amount": total_amount,
        "held_amount": held_amount,
        "released_amount": released_amount,
        "unread_notifications": int(unread or 0),
    }


__all__ = [
    "advance_escrow",
    "escrow_statistics",
    "fund_escrow",
    "get_escrow",
    "get_visible_escrow",
    "list_escrows",
]
