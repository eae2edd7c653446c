"""Dispute sub-bus: raised by a project party, closed by an admin."""
from __future__ import annotations

import logging

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from freelancehub.models.dispute import Dispute, DisputeStatus
from freelancehub.models.notification import NotificationPriority, NotificationType
from freelancehub.models.user import UserRole
from freelancehub.schemas.dispute import DisputeCreate
from freelancehub.security import Principal, require_role
from freelancehub.services import projects as project_service
from freelancehub.services.notifications import ActionResult, NotificationDraft, Recipient, dispatch
from freelancehub.services.state_machine import DISPUTABLE_PROJECT_STATUSES, dispute_transition
from freelancehub.services.uow import swap_status, unit_of_work
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import Forbidden, InvalidStateTransition, NotFound, PreconditionFailed, ValidationFailed
from freelancehub.utils.time import utcnow

logger = logging.getLogger(__name__)


def get_dispute(db: Session, dispute_id: int) -> Dispute:
    dispute = db.get(Dispute, dispute_id)
    if dispute is None:
        raise NotFound("Dispute not found.", details={"dispute_id": dispute_id})
    return dispute


def get_visible_dispute(db: Session, principal: Principal, dispute_id: int) -> Dispute:
    dispute = get_dispute(db, dispute_id)
    if not principal.is_admin and principal.id not in (dispute.raiser_id, dispute.other_party_id):
        raise Forbidden("Dispute is not visible to this principal.", details={"dispute_id": dispute_id})
    return dispute


def list_disputes(
    db: Session,
    principal: Principal,
    *,
    status: DisputeStatus | None = None,
    project_id: int | None = None,
) -> list[Dispute]:
    stmt = select(Dispute)
    if not principal.is_admin:
        stmt = stmt.where(or_(Dispute.raiser_id == principal.id, Dispute.other_party_id == principal.id))
    if status is not None:
        stmt = stmt.where(Dispute.status == status)
    if project_id is not None:
        stmt = stmt.where(Dispute.project_id == project_id)
    return list(db.scalars(stmt.order_by(Dispute.created_at.desc(), Dispute.id.desc())).all())


def raise_dispute(db: Session, principal: Principal, payload: DisputeCreate) -> ActionResult[Dispute]:
    """Open a pending dispute against the other party of an active project."""

    require_role(principal, UserRole.CLIENT, UserRole.FREELANCER, action="raise disputes")
    description = (payload.description or "").strip()
    if not description:
        raise ValidationFailed("Dispute description is required.", details={"field": "description"})

    project = project_service.get_project(db, payload.project_id)
    if principal.id not in (project.client_id, project.freelancer_id):
        raise Forbidden("Only the project's client or freelancer can raise a dispute.", details={"project_id": project.id})
    if project.status not in DISPUTABLE_PROJECT_STATUSES or project.freelancer_id is None:
        raise PreconditionFailed(
            "Disputes can only be raised on projects with an accepted bid that are in progress or completed.",
            details={"project_id": project.id, "status": project.status.value},
        )

    if principal.id == project.client_id:
        other_party_id, other_party_role = project.freelancer_id, UserRole.FREELANCER
    else:
        other_party_id, other_party_role = project.client_id, UserRole.CLIENT

    dispute = Dispute(
        project_id=project.id,
        project_title=project.title,
        raiser_id=principal.id,
        raiser_role=principal.role,
        other_party_id=other_party_id,
        other_party_role=other_party_role,
        description=description,
        status=DisputeStatus.PENDING,
        is_read_by_admin=False,
    )
    with unit_of_work(db):
        db.add(dispute)
        db.flush()
        log_audit(
            db,
            actor=actor_label(principal),
            action="DISPUTE_RAISED",
            entity="Dispute",
            entity_id=dispute.id,
            data={"project_id": project.id, "other_party_id": other_party_id},
        )
    db.refresh(dispute)

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(principal.id),
            type=NotificationType.DISPUTE_RAISED,
            content=f"Your dispute on '{project.title}' was submitted. An administrator will review it.",
            project_id=project.id,
            dispute_id=dispute.id,
        ),
        NotificationDraft(
            recipient=Recipient.user(other_party_id),
            type=NotificationType.DISPUTE_RAISED_AGAINST,
            content=f"A dispute was raised against you on '{project.title}'.",
            priority=NotificationPriority.HIGH,
            project_id=project.id,
            dispute_id=dispute.id,
        ),
    ]
    logger.info("Dispute raised", extra={"dispute_id": dispute.id, "project_id": project.id})
    return ActionResult(dispute, dispatch(db, drafts))


def close_dispute(db: Session, principal: Principal, dispute_id: int) -> ActionResult[Dispute]:
    """Close a pending dispute and tell each party exactly once."""

    require_role(principal, UserRole.ADMIN, action="close disputes")
    dispute = get_dispute(db, dispute_id)
    target = dispute_transition(dispute.status, DisputeStatus.CLOSED)

    with unit_of_work(db):
        if not swap_status(
            db,
            Dispute,
            dispute.id,
            [DisputeStatus.PENDING],
            status=target,
            closed_by_id=principal.id,
            closed_at=utcnow(),
        ):
            raise InvalidStateTransition(
                "Dispute is already closed.",
                details={"dispute_id": dispute.id, "status": DisputeStatus.CLOSED.value},
            )
        log_audit(
            db,
            actor=actor_label(principal),
            action="DISPUTE_CLOSED",
            entity="Dispute",
            entity_id=dispute.id,
            data={"project_id": dispute.project_id},
        )
    db.refresh(dispute)

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(party_id),
            type=NotificationType.DISPUTE_CLOSED,
            content=f"The dispute on '{dispute.project_title}' has been closed by an administrator.",
            priority=NotificationPriority.HIGH,
            project_id=dispute.project_id,
            dispute_id=dispute.id,
        )
        for party_id in (dispute.raiser_id, dispute.other_party_id)
    ]
    logger.info("Dispute closed", extra={"dispute_id": dispute.id, "closed_by": principal.id})
    return ActionResult(dispute, dispatch(db, drafts))


def mark_read_by_admin(db: Session, principal: Principal, dispute_id: int) -> Dispute:
    """Flip the admin-read flag; repeated calls change nothing."""

    require_role(principal, UserRole.ADMIN, action="review disputes")
    dispute = get_dispute(db, dispute_id)
    if dispute.is_read_by_admin:
        return dispute
    db.execute(
        update(Dispute)
        .where(Dispute.id == dispute.id, Dispute.is_read_by_admin.is_(False))
        .values(is_read_by_admin=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(dispute)
    return dispute


__all__ = [
    "close_dispute",
    "get_dispute",
    "get_visible_dispute",
    "list_disputes",
    "mark_read_by_admin",
    "raise_dispute",
]
