"""Project conversation threads."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from freelancehub.models.bid import Bid
from freelancehub.models.message import Message
from freelancehub.models.project import Project
from freelancehub.schemas.message import MessageCreate
from freelancehub.security import Principal
from freelancehub.services import notifications as notification_service
from freelancehub.services import projects as project_service
from freelancehub.utils.errors import Forbidden, ValidationFailed
from freelancehub.utils.time import as_utc

logger = logging.getLogger(__name__)


def _has_bid(db: Session, project_id: int, freelancer_id: int) -> bool:
    stmt = select(Bid.id).where(Bid.project_id == project_id, Bid.freelancer_id == freelancer_id)
    return db.scalars(stmt.limit(1)).first() is not None


def _is_freelancer_party(db: Session, project: Project, user_id: int) -> bool:
    return project.freelancer_id == user_id or _has_bid(db, project.id, user_id)


def send_message(db: Session, principal: Principal, project_id: int, payload: MessageCreate) -> Message:
    """Post a message between the project's client and a bidding freelancer."""

    project = project_service.get_project(db, project_id)
    content = (payload.content or "").strip()
    if not content:
        raise ValidationFailed("Message content is required.", details={"field": "content"})

    if principal.id == project.client_id:
        if not _is_freelancer_party(db, project, payload.recipient_id):
            raise ValidationFailed(
                "Recipient has not bid on this project.",
                details={"recipient_id": payload.recipient_id},
            )
    elif _is_freelancer_party(db, project, principal.id):
        if payload.recipient_id != project.client_id:
            raise ValidationFailed(
                "Freelancers can only message the project's client.",
                details={"recipient_id": payload.recipient_id},
            )
    else:
        raise Forbidden("Only project participants can send messages.", details={"project_id": project.id})

    message = Message(
        project_id=project.id,
        sender_id=principal.id,
        recipient_id=payload.recipient_id,
        content=content,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(
        "Message sent",
        extra={"message_id": message.id, "project_id": project.id, "sender_id": principal.id},
    )
    return message


def thread(
    db: Session,
    principal: Principal,
    project_id: int,
    *,
    counterpart_id: int | None = None,
) -> list[dict[str, Any]]:
    """Messages and the caller's notifications for a project, oldest first."""

    project = project_service.get_project(db, project_id)
    participant = principal.id == project.client_id or _is_freelancer_party(db, project, principal.id)
    if not (principal.is_admin or participant):
        raise Forbidden("Only project participants can read this thread.", details={"project_id": project.id})

    stmt = select(Message).where(Message.project_id == project.id)
    if not principal.is_admin:
        stmt = stmt.where(or_(Message.sender_id == principal.id, Message.recipient_id == principal.id))
    if counterpart_id is not None:
        stmt = stmt.where(
            or_(
                and_(Message.sender_id == principal.id, Message.recipient_id == counterpart_id),
                and_(Message.sender_id == counterpart_id, Message.recipient_id == principal.id),
            )
        )
    items: list[dict[str, Any]] = [
        {
            "kind": "message",
            "id": message.id,
            "content": message.content,
            "sender_id": message.sender_id,
            "type": None,
            "created_at": as_utc(message.created_at),
        }
        for message in db.scalars(stmt).all()
    ]
    notes = notification_service.query(
        db, principal, notification_service.NotificationFilter(project_id=project.id)
    )
    items.extend(
        {
            "kind": "notification",
            "id": note.id,
            "content": note.content,
            "sender_id": None,
            "type": note.type,
            "created_at": as_utc(note.created_at),
        }
        for note in notes
    )
    items.sort(key=lambda item: (item["created_at"], item["kind"], item["id"]))
    return items


__all__ = ["send_message", "thread"]
