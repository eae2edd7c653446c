"""Project store and the project-side lifecycle commands."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from freelancehub.config import get_settings
from freelancehub.models.bid import Bid, BidStatus
from freelancehub.models.dispute import Dispute
from freelancehub.models.escrow import LIVE_ESCROW_STATUSES, Escrow, EscrowStatus
from freelancehub.models.notification import (
    ACTION_REDIRECT_TO_BID,
    NotificationPriority,
    NotificationType,
)
from freelancehub.models.project import Project, ProjectStatus
from freelancehub.models.user import UserRole
from freelancehub.schemas.project import ProjectCreate, ProjectUpdate
from freelancehub.security import Principal, require_role
from freelancehub.services.notifications import (
    ActionResult,
    NotificationDraft,
    Recipient,
    dispatch,
    pending_settlement_request,
    resolve_settlement_requests,
)
from freelancehub.services.state_machine import (
    DELETABLE_PROJECT_STATUSES,
    EDITABLE_PROJECT_STATUSES,
    ProjectAction,
    can_transition_bid,
    project_transition,
)
from freelancehub.services.uow import swap_status, unit_of_work
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import (
    Conflict,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    PreconditionFailed,
    ValidationFailed,
)
from freelancehub.utils.money import to_decimal
from freelancehub.utils.time import utcnow

logger = logging.getLogger(__name__)


def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailed(f"{field} is required.", details={"field": field})
    return text


def _validate_budget(value: Any) -> Decimal:
    budget = to_decimal(value, field="budget")
    if budget <= 0:
        raise ValidationFailed("Budget must be greater than zero.", details={"budget": str(budget)})
    return budget


def _clean_skills(skills: list[str] | None) -> list[str]:
    seen: list[str] = []
    for skill in skills or []:
        name = skill.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def append_note(existing: str | None, note: str | None) -> str:
    if not note:
        return existing or ""
    if not existing:
        return note
    return f"{existing}\n{note}"


def get_project(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFound("Project not found.", details={"project_id": project_id})
    return project


def list_projects(
    db: Session,
    *,
    status: ProjectStatus | None = None,
    client_id: int | None = None,
    freelancer_id: int | None = None,
) -> list[Project]:
    stmt = select(Project)
    if status is not None:
        stmt = stmt.where(Project.status == status)
    if client_id is not None:
        stmt = stmt.where(Project.client_id == client_id)
    if freelancer_id is not None:
        stmt = stmt.where(Project.freelancer_id == freelancer_id)
    return list(db.scalars(stmt.order_by(Project.created_at.desc(), Project.id.desc())).all())


def ensure_owner(project: Project, principal: Principal) -> None:
    if project.client_id != principal.id:
        raise Forbidden("Project belongs to another client.", details={"project_id": project.id})


def ensure_assigned(project: Project, principal: Principal) -> None:
    if project.freelancer_id is None or project.freelancer_id != principal.id:
        raise Forbidden("Project is assigned to another freelancer.", details={"project_id": project.id})


def move_project(
    db: Session,
    project: Project,
    action: ProjectAction,
    role: UserRole,
    **values: Any,
) -> ProjectStatus:
    """Apply ``action`` to ``project`` as a compare-and-swap on its current status."""

    current = project.status
    target = project_transition(current, action, role)
    if not swap_status(db, Project, project.id, [current], status=target, **values):
        raise PreconditionFailed(
            "Project was modified by another request.",
            details={"project_id": project.id, "expected_status": current.value},
        )
    db.refresh(project)
    return target


# --- Escrow side effects of project commands --------------------------------


def escrow_drafts(escrow: Escrow, target: EscrowStatus) -> list[NotificationDraft]:
    """Notifications emitted when ``escrow`` enters ``target``."""

    amount = get_settings().format_amount(escrow.amount)
    common: dict[str, Any] = {"project_id": escrow.project_id, "escrow_id": escrow.id, "bid_id": escrow.bid_id}
    if target == EscrowStatus.IN_PROGRESS:
        return [
            NotificationDraft(
                recipient=Recipient.user(escrow.client_id),
                type=NotificationType.ESCROW_WORK_COMPLETED,
                content=f"Work on '{escrow.project_title}' is complete. Review it and approve the release of {amount}.",
                priority=NotificationPriority.HIGH,
                **common,
            )
        ]
    if target == EscrowStatus.READY_FOR_RELEASE:
        return [
            NotificationDraft(
                recipient=Recipient.admin(),
                type=NotificationType.ESCROW_CLIENT_APPROVED_WORK,
                content=f"The client approved the work on '{escrow.project_title}'. {amount} is ready for release.",
                priority=NotificationPriority.HIGH,
                **common,
            )
        ]
    if target == EscrowStatus.RELEASED:
        return [
            NotificationDraft(
                recipient=Recipient.user(escrow.freelancer_id),
                type=NotificationType.ESCROW_FUNDS_RELEASED,
                content=f"{amount} for '{escrow.project_title}' has been released to you.",
                priority=NotificationPriority.HIGH,
                **common,
            )
        ]
    if target == EscrowStatus.CANCELLED:
        return [
            NotificationDraft(
                recipient=Recipient.user(escrow.client_id),
                type=NotificationType.ESCROW_CANCELLED,
                content=f"The escrow of {amount} for '{escrow.project_title}' was cancelled.",
                **common,
            )
        ]
    return []


def move_bids(
    db: Session,
    project_id: int,
    sources: frozenset[BidStatus],
    target: BidStatus,
    *,
    exclude_bid_id: int | None = None,
) -> int:
    """Bulk-move the project's bids in ``sources`` to ``target``; returns the row count."""

    illegal = sorted(s.value for s in sources if not can_transition_bid(s, target))
    if illegal:
        raise InvalidStateTransition(
            f"Bids cannot move from {', '.join(illegal)} to {target.value}.",
            details={"project_id": project_id, "target": target.value},
        )
    stmt = update(Bid).where(Bid.project_id == project_id, Bid.status.in_(list(sources)))
    if exclude_bid_id is not None:
        stmt = stmt.where(Bid.id != exclude_bid_id)
    return db.execute(stmt.values(status=target)).rowcount


def live_escrow(db: Session, project_id: int) -> Escrow | None:
    return db.scalars(
        select(Escrow).where(Escrow.project_id == project_id, Escrow.status.in_(list(LIVE_ESCROW_STATUSES)))
    ).first()


def cancel_live_escrow(db: Session, project_id: int, *, note: str) -> Escrow | None:
    """Cancel the project's pending/in-progress/ready escrow, if there is one."""

    escrow = live_escrow(db, project_id)
    if escrow is None:
        return None
    if not swap_status(
        db,
        Escrow,
        escrow.id,
        [escrow.status],
        status=EscrowStatus.CANCELLED,
        notes=append_note(escrow.notes, note),
    ):
        raise PreconditionFailed("Escrow was modified by another request.", details={"escrow_id": escrow.id})
    db.refresh(escrow)
    return escrow


def start_pending_escrow(db: Session, project_id: int) -> Escrow | None:
    """Advance a pending escrow to in_progress once the freelancer completes the work."""

    escrow = db.scalars(
        select(Escrow).where(Escrow.project_id == project_id, Escrow.status == EscrowStatus.PENDING)
    ).first()
    if escrow is None:
        return None
    if not swap_status(db, Escrow, escrow.id, [EscrowStatus.PENDING], status=EscrowStatus.IN_PROGRESS):
        raise PreconditionFailed("Escrow was modified by another request.", details={"escrow_id": escrow.id})
    db.refresh(escrow)
    return escrow


def close_by_admin(db: Session, project: Project, role: UserRole) -> ProjectStatus:
    """Force-close ``project`` inside the caller's unit of work."""

    target = move_project(db, project, ProjectAction.ADMIN_CLOSE, role, completed_at=utcnow())
    resolve_settlement_requests(db, project.id)
    return target


# --- Commands ---------------------------------------------------------------


def create_project(db: Session, principal: Principal, payload: ProjectCreate) -> Project:
    """Post a new open project owned by the calling client."""

    require_role(principal, UserRole.CLIENT, action="create projects")
    project = Project(
        title=_require_text(payload.title, "title"),
        description=_require_text(payload.description, "description"),
        budget=_validate_budget(payload.budget),
        required_skills=_clean_skills(payload.required_skills),
        deadline=payload.deadline,
        status=ProjectStatus.OPEN,
        client_id=principal.id,
    )
    with unit_of_work(db):
        db.add(project)
        db.flush()
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_CREATED",
            entity="Project",
            entity_id=project.id,
            data={"budget": str(project.budget), "status": project.status.value},
        )
    db.refresh(project)
    logger.info("Project created", extra={"project_id": project.id, "client_id": principal.id})
    return project


def update_project(db: Session, principal: Principal, project_id: int, payload: ProjectUpdate) -> Project:
    require_role(principal, UserRole.CLIENT, action="edit projects")
    project = get_project(db, project_id)
    ensure_owner(project, principal)
    if project.status not in EDITABLE_PROJECT_STATUSES:
        raise PreconditionFailed(
            f"A {project.status.value} project cannot be edited.",
            details={"project_id": project.id, "status": project.status.value},
        )

    changes = payload.model_dump(exclude_unset=True)
    values: dict[str, Any] = {}
    if "title" in changes:
        values["title"] = _require_text(changes["title"], "title")
    if "description" in changes:
        values["description"] = _require_text(changes["description"], "description")
    if "budget" in changes:
        values["budget"] = _validate_budget(changes["budget"])
    if "required_skills" in changes:
        values["required_skills"] = _clean_skills(changes["required_skills"])
    if "deadline" in changes:
        values["deadline"] = changes["deadline"]

    with unit_of_work(db):
        for field, value in values.items():
            setattr(project, field, value)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_UPDATED",
            entity="Project",
            entity_id=project.id,
            data={"fields": sorted(changes)},
        )
    db.refresh(project)
    logger.info("Project updated", extra={"project_id": project.id, "fields": sorted(changes)})
    return project


def cancel_project(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Cancel the project, release its freelancer and unwind any live escrow."""

    require_role(principal, UserRole.CLIENT, action="cancel projects")
    project = get_project(db, project_id)
    ensure_owner(project, principal)
    assigned_freelancer = project.freelancer_id

    with unit_of_work(db):
        move_project(db, project, ProjectAction.CANCEL, principal.role, freelancer_id=None, completed_at=None)
        move_bids(db, project.id, frozenset({BidStatus.ACCEPTED}), BidStatus.REJECTED)
        escrow = cancel_live_escrow(db, project.id, note="Project cancelled by the client.")
        resolve_settlement_requests(db, project.id)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_CANCELLED",
            entity="Project",
            entity_id=project.id,
            data={
                "freelancer_id": assigned_freelancer,
                "escrow_id": escrow.id if escrow else None,
            },
        )

    drafts: list[NotificationDraft] = []
    if assigned_freelancer is not None:
        drafts.append(
            NotificationDraft(
                recipient=Recipient.user(assigned_freelancer),
                type=NotificationType.PROJECT_CANCELLED,
                content=f"The client cancelled the project '{project.title}'.",
                priority=NotificationPriority.HIGH,
                project_id=project.id,
            )
        )
    if escrow is not None:
        drafts.extend(escrow_drafts(escrow, EscrowStatus.CANCELLED))
    logger.info(
        "Project cancelled",
        extra={"project_id": project.id, "escrow_id": escrow.id if escrow else None},
    )
    return ActionResult(project, dispatch(db, drafts))


def reopen_project(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Reopen a cancelled project and start a new bidding round."""

    require_role(principal, UserRole.CLIENT, action="reopen projects")
    project = get_project(db, project_id)
    ensure_owner(project, principal)

    with unit_of_work(db):
        move_project(db, project, ProjectAction.REOPEN, principal.role)
        reset = move_bids(db, project.id, frozenset({BidStatus.REJECTED}), BidStatus.PENDING)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_REOPENED",
            entity="Project",
            entity_id=project.id,
            data={"bids_reset": reset},
        )
    logger.info("Project reopened", extra={"project_id": project.id, "bids_reset": reset})
    return ActionResult(project)


def complete_project(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Freelancer marks the work done; a pending escrow starts moving."""

    require_role(principal, UserRole.FREELANCER, action="complete projects")
    project = get_project(db, project_id)
    ensure_assigned(project, principal)

    with unit_of_work(db):
        move_project(db, project, ProjectAction.COMPLETE, principal.role, completed_at=utcnow())
        escrow = start_pending_escrow(db, project.id)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_COMPLETED",
            entity="Project",
            entity_id=project.id,
            data={"escrow_id": escrow.id if escrow else None},
        )

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(project.client_id),
            type=NotificationType.PROJECT_COMPLETED,
            content=f"The freelancer marked '{project.title}' as completed.",
            priority=NotificationPriority.HIGH,
            project_id=project.id,
        )
    ]
    if escrow is not None:
        drafts.extend(escrow_drafts(escrow, EscrowStatus.IN_PROGRESS))
    logger.info("Project completed", extra={"project_id": project.id})
    return ActionResult(project, dispatch(db, drafts))


def unmark_complete(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    require_role(principal, UserRole.FREELANCER, action="unmark completed projects")
    project = get_project(db, project_id)
    ensure_assigned(project, principal)

    with unit_of_work(db):
        move_project(db, project, ProjectAction.UNMARK_COMPLETE, principal.role, completed_at=None)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_UNCOMPLETED",
            entity="Project",
            entity_id=project.id,
            data={},
        )

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(project.client_id),
            type=NotificationType.PROJECT_UNCOMPLETED,
            content=f"The freelancer moved '{project.title}' back to in progress.",
            project_id=project.id,
        )
    ]
    logger.info("Project completion withdrawn", extra={"project_id": project.id})
    return ActionResult(project, dispatch(db, drafts))


def _accepted_bid(db: Session, project_id: int) -> Bid | None:
    return db.scalars(
        select(Bid).where(Bid.project_id == project_id, Bid.status == BidStatus.ACCEPTED)
    ).first()


def has_open_escrow(db: Session, project_id: int) -> bool:
    """True while a non-cancelled escrow exists for the project."""

    stmt = select(Escrow.id).where(Escrow.project_id == project_id, Escrow.status != EscrowStatus.CANCELLED)
    return db.scalars(stmt.limit(1)).first() is not None


def settle_project(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Send the freelancer a pay-request for a completed project paid outside escrow."""

    require_role(principal, UserRole.CLIENT, action="settle projects")
    project = get_project(db, project_id)
    ensure_owner(project, principal)
    if project.status != ProjectStatus.COMPLETED:
        raise PreconditionFailed(
            "Only completed projects can be settled.",
            details={"project_id": project.id, "status": project.status.value},
        )
    bid = _accepted_bid(db, project.id)
    if bid is None:
        raise PreconditionFailed("Project has no accepted bid.", details={"project_id": project.id})
    if has_open_escrow(db, project.id):
        raise Conflict("Project is already paid through escrow.", details={"project_id": project.id})
    if pending_settlement_request(db, project.id) is not None:
        raise Conflict("A settlement request is already pending.", details={"project_id": project.id})

    with unit_of_work(db):
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_SETTLEMENT_REQUESTED",
            entity="Project",
            entity_id=project.id,
            data={"bid_id": bid.id, "amount": str(bid.amount)},
        )

    amount = get_settings().format_amount(bid.amount)
    drafts = [
        NotificationDraft(
            recipient=Recipient.user(bid.freelancer_id),
            type=NotificationType.PAYMENT_SETTLEMENT_REQUEST,
            content=f"The client has settled {amount} for '{project.title}'. Confirm that you received the payment.",
            priority=NotificationPriority.HIGH,
            project_id=project.id,
            bid_id=bid.id,
            action_type=ACTION_REDIRECT_TO_BID,
            action_text="Accept payment",
        )
    ]
    logger.info("Project settlement requested", extra={"project_id": project.id, "bid_id": bid.id})
    return ActionResult(project, dispatch(db, drafts))


def accept_payment(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Freelancer confirms a settlement; the project closes."""

    require_role(principal, UserRole.FREELANCER, action="accept payments")
    project = get_project(db, project_id)
    ensure_assigned(project, principal)
    request = pending_settlement_request(db, project.id)
    if request is None:
        raise PreconditionFailed("No pending settlement request for this project.", details={"project_id": project.id})

    with unit_of_work(db):
        move_project(db, project, ProjectAction.ACCEPT_PAYMENT, principal.role)
        resolve_settlement_requests(db, project.id)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_PAYMENT_ACCEPTED",
            entity="Project",
            entity_id=project.id,
            data={"notification_id": request.id},
        )

    drafts = [
        NotificationDraft(
            recipient=Recipient.user(project.client_id),
            type=NotificationType.PAYMENT_ACCEPTED,
            content=f"The freelancer confirmed payment for '{project.title}'. The project is closed.",
            project_id=project.id,
            bid_id=request.bid_id,
        )
    ]
    logger.info("Project payment accepted", extra={"project_id": project.id})
    return ActionResult(project, dispatch(db, drafts))


def admin_close_project(db: Session, principal: Principal, project_id: int) -> ActionResult[Project]:
    """Force-close an assigned project. A live escrow must be released or cancelled first."""

    require_role(principal, UserRole.ADMIN, action="close projects")
    project = get_project(db, project_id)
    escrow = live_escrow(db, project.id)
    if escrow is not None:
        raise Conflict(
            "Project has a live escrow; release or cancel it before closing the project.",
            details={"project_id": project.id, "escrow_id": escrow.id, "escrow_status": escrow.status.value},
        )
    with unit_of_work(db):
        close_by_admin(db, project, principal.role)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_ADMIN_CLOSED",
            entity="Project",
            entity_id=project.id,
            data={},
        )
    logger.info("Project closed by admin", extra={"project_id": project.id})
    return ActionResult(project)


def delete_project(db: Session, principal: Principal, project_id: int) -> None:
    """Hard-delete an open or cancelled project together with its bids."""

    require_role(principal, UserRole.CLIENT, action="delete projects")
    project = get_project(db, project_id)
    ensure_owner(project, principal)
    if project.status not in DELETABLE_PROJECT_STATUSES:
        raise PreconditionFailed(
            f"A {project.status.value} project cannot be deleted.",
            details={"project_id": project.id, "status": project.status.value},
        )
    escrows = db.scalar(select(func.count(Escrow.id)).where(Escrow.project_id == project.id))
    disputes = db.scalar(select(func.count(Dispute.id)).where(Dispute.project_id == project.id))
    if escrows or disputes:
        raise Conflict(
            "Project has escrow or dispute history and cannot be deleted.",
            details={"project_id": project.id, "escrows": escrows, "disputes": disputes},
        )

    with unit_of_work(db):
        # Loading the collection lets the ORM cascade remove every bid.
        removed = len(project.bids)
        db.delete(project)
        log_audit(
            db,
            actor=actor_label(principal),
            action="PROJECT_DELETED",
            entity="Project",
            entity_id=project_id,
            data={"bids_deleted": removed},
        )
    logger.info("Project deleted", extra={"project_id": project_id, "bids_deleted": removed})


def has_closed_project(db: Session, client_id: int, freelancer_id: int) -> int:
    """Number of closed projects between ``client_id`` and ``freelancer_id``."""

    stmt = select(func.count(Project.id)).where(
        Project.client_id == client_id,
        Project.freelancer_id == freelancer_id,
        Project.status == ProjectStatus.CLOSED,
    )
    return int(db.scalar(stmt) or 0)


__all__ = [
    "accept_payment",
    "append_note",
    "admin_close_project",
    "cancel_live_escrow",
    "cancel_project",
    "close_by_admin",
    "complete_project",
    "create_project",
    "delete_project",
    "ensure_assigned",
    "ensure_owner",
    "escrow_drafts",
    "get_project",
    "has_closed_project",
    "has_open_escrow",
    "list_projects",
    "live_escrow",
    "move_bids",
    "move_project",
    "reopen_project",
    "settle_project",
    "start_pending_escrow",
    "unmark_complete",
    "update_project",
]
