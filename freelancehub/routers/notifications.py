"""Notification endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.notification import Notification
from freelancehub.schemas.notification import (
    MarkAllReadPayload,
    MarkAllReadResult,
    NotificationRead,
    UnreadCounts,
)
from freelancehub.security import Principal, require_principal
from freelancehub.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    unread: bool = False,
    notification_type: str | None = Query(default=None, alias="type"),
    type_prefix: str | None = None,
    project_id: int | None = None,
    escrow_id: int | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Notification]:
    flt = notification_service.NotificationFilter(
        unread_only=unread,
        type=notification_type,
        type_prefix=type_prefix,
        project_id=project_id,
        escrow_id=escrow_id,
    )
    return notification_service.query(db, principal, flt)


@router.get("/counts", response_model=UnreadCounts)
def unread_counts(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> UnreadCounts:
    return UnreadCounts(**notification_service.unread_counts(db, principal))


@router.post("/read-all", response_model=MarkAllReadResult)
def mark_all_read(
    payload: MarkAllReadPayload,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> MarkAllReadResult:
    recipient = notification_service.recipient_for_principal(principal, as_admin_role=payload.admin_inbox)
    updated = notification_service.mark_all_read(
        db, recipient, type_prefix=payload.type_prefix, escrow_id=payload.escrow_id
    )
    return MarkAllReadResult(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Notification:
    return notification_service.mark_read(db, principal, notification_id)
