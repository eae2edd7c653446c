"""User accounts and admin suspension."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from freelancehub.models.api_key import ApiKey
from freelancehub.models.notification import NotificationPriority, NotificationType
from freelancehub.models.project import Project, ProjectStatus
from freelancehub.models.user import User, UserRole
from freelancehub.schemas.user import UserCreate
from freelancehub.security import Principal, require_role
from freelancehub.services.notifications import ActionResult, NotificationDraft, Recipient, dispatch
from freelancehub.services.uow import unit_of_work
from freelancehub.utils.apikey import gen_key
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import Conflict, NotFound, ValidationFailed
from freelancehub.utils.time import utcnow

logger = logging.getLogger(__name__)

ACTIVE_PROJECT_STATUSES = (ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found.", details={"user_id": user_id})
    return user


def create_user(db: Session, payload: UserCreate, *, actor: str = "system") -> User:
    username = payload.username.strip()
    if not username:
        raise ValidationFailed("Username is required.", details={"field": "username"})
    user = User(
        username=username,
        email=str(payload.email),
        role=payload.role,
        is_active=payload.is_active,
    )
    try:
        with unit_of_work(db):
            db.add(user)
            db.flush()
            log_audit(
                db,
                actor=actor,
                action="CREATE_USER",
                entity="User",
                entity_id=user.id,
                data={"username": user.username, "email": user.email, "role": user.role.value},
            )
    except IntegrityError as exc:
        raise Conflict("Username or email already exists.", details={"username": username}) from exc
    db.refresh(user)
    logger.info("User created", extra={"user_id": user.id, "role": user.role.value})
    return user


def issue_api_key(
    db: Session, user: User, *, name: str, days_valid: int | None = None, actor: str = "system"
) -> tuple[ApiKey, str]:
    """Create a key bound to ``user``; the raw value is only returned here."""

    name = name.strip()
    if not name:
        raise ValidationFailed("Key name is required.", details={"field": "name"})
    raw, prefix, key_hash = gen_key()
    expires_at = utcnow() + timedelta(days=days_valid) if days_valid else None
    row = ApiKey(name=name, prefix=prefix, key_hash=key_hash, user_id=user.id, expires_at=expires_at, is_active=True)
    try:
        with unit_of_work(db):
            db.add(row)
            db.flush()
            log_audit(
                db,
                actor=actor,
                action="CREATE_API_KEY",
                entity="ApiKey",
                entity_id=row.id,
                data={"name": row.name, "user_id": user.id},
            )
    except IntegrityError as exc:
        raise Conflict("Key name already exists.", details={"name": name}) from exc
    db.refresh(row)
    return row, raw


def _active_projects(db: Session, user_id: int) -> list[Project]:
    stmt = select(Project).where(
        or_(Project.client_id == user_id, Project.freelancer_id == user_id),
        Project.status.in_(ACTIVE_PROJECT_STATUSES),
    )
    return list(db.scalars(stmt).all())


def suspend_user(db: Session, principal: Principal, user_id: int) -> ActionResult[User]:
    """Deactivate a user and warn the other party of each active project."""

    require_role(principal, UserRole.ADMIN, action="suspend users")
    user = get_user(db, user_id)
    if not user.is_active:
        return ActionResult(user)

    projects = _active_projects(db, user.id)
    with unit_of_work(db):
        user.is_active = False
        log_audit(
            db,
            actor=actor_label(principal),
            action="USER_SUSPENDED",
            entity="User",
            entity_id=user.id,
            data={"active_projects": [project.id for project in projects]},
        )
    db.refresh(user)

    drafts: list[NotificationDraft] = []
    for project in projects:
        other_party = project.freelancer_id if project.client_id == user.id else project.client_id
        if other_party is None:
            continue
        drafts.append(
            NotificationDraft(
                recipient=Recipient.user(other_party),
                type=NotificationType.USER_SUSPENDED,
                content=f"{user.username} has been suspended. Contact support about '{project.title}'.",
                priority=NotificationPriority.HIGH,
                project_id=project.id,
            )
        )
    logger.info("User suspended", extra={"user_id": user.id, "active_projects": len(projects)})
    return ActionResult(user, dispatch(db, drafts))


def reactivate_user(db: Session, principal: Principal, user_id: int) -> User:
    require_role(principal, UserRole.ADMIN, action="reactivate users")
    user = get_user(db, user_id)
    if user.is_active:
        return user
    with unit_of_work(db):
        user.is_active = True
        log_audit(
            db,
            actor=actor_label(principal),
            action="USER_REACTIVATED",
            entity="User",
            entity_id=user.id,
            data={},
        )
    db.refresh(user)
    logger.info("User reactivated", extra={"user_id": user.id})
    return user


__all__ = [
    "create_user",
    "get_user",
    "issue_api_key",
    "reactivate_user",
    "suspend_user",
]
