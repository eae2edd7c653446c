"""Escrow ledger endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.escrow import Escrow, EscrowStatus
from freelancehub.models.user import UserRole
from freelancehub.schemas.escrow import (
    EscrowActionRead,
    EscrowAdvance,
    EscrowFund,
    EscrowRead,
    EscrowStatistics,
)
from freelancehub.schemas.notification import MarkAllReadResult
from freelancehub.security import Principal, require_principal, require_roles
from freelancehub.services import escrow as escrow_service
from freelancehub.services import notifications as notification_service
from freelancehub.services.notifications import ActionResult, Recipient

from ._responses import notification_reads

router = APIRouter(prefix="/escrows", tags=["escrow"])


def _action_read(result: ActionResult[Escrow]) -> EscrowActionRead:
    return EscrowActionRead(
        escrow=EscrowRead.model_validate(result.entity),
        notifications=notification_reads(result.notifications),
    )


@router.post("", response_model=EscrowActionRead, status_code=status.HTTP_201_CREATED)
def fund_escrow(
    payload: EscrowFund,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> EscrowActionRead:
    return _action_read(escrow_service.fund_escrow(db, principal, payload))


@router.get("", response_model=list[EscrowRead])
def list_escrows(
    escrow_status: EscrowStatus | None = Query(default=None, alias="status"),
    project_id: int | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Escrow]:
    return escrow_service.list_escrows(db, principal, status=escrow_status, project_id=project_id)


@router.get("/statistics", response_model=EscrowStatistics)
def escrow_statistics(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> EscrowStatistics:
    return EscrowStatistics(**escrow_service.escrow_statistics(db, principal))


@router.get("/{escrow_id}", response_model=EscrowRead)
def get_escrow(
    escrow_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Escrow:
    return escrow_service.get_visible_escrow(db, principal, escrow_id)


@router.post("/{escrow_id}/advance", response_model=EscrowActionRead)
def advance_escrow(
    escrow_id: int,
    payload: EscrowAdvance,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> EscrowActionRead:
    return _action_read(escrow_service.advance_escrow(db, principal, escrow_id, payload))


@router.post("/{escrow_id}/notifications/read", response_model=MarkAllReadResult)
def mark_escrow_notifications_read(
    escrow_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> MarkAllReadResult:
    escrow = escrow_service.get_escrow(db, escrow_id)
    updated = notification_service.mark_all_read(db, Recipient.admin(), escrow_id=escrow.id)
    return MarkAllReadResult(updated=updated)
