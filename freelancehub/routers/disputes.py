"""Dispute endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.dispute import Dispute, DisputeStatus
from freelancehub.schemas.dispute import DisputeActionRead, DisputeCreate, DisputeRead
from freelancehub.security import Principal, require_principal
from freelancehub.services import disputes as dispute_service
from freelancehub.services.notifications import ActionResult

from ._responses import notification_reads

router = APIRouter(prefix="/disputes", tags=["disputes"])


def _action_read(result: ActionResult[Dispute]) -> DisputeActionRead:
    return DisputeActionRead(
        dispute=DisputeRead.model_validate(result.entity),
        notifications=notification_reads(result.notifications),
    )


@router.post("", response_model=DisputeActionRead, status_code=status.HTTP_201_CREATED)
def raise_dispute(
    payload: DisputeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> DisputeActionRead:
    return _action_read(dispute_service.raise_dispute(db, principal, payload))


@router.get("", response_model=list[DisputeRead])
def list_disputes(
    dispute_status: DisputeStatus | None = Query(default=None, alias="status"),
    project_id: int | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Dispute]:
    return dispute_service.list_disputes(db, principal, status=dispute_status, project_id=project_id)


@router.get("/{dispute_id}", response_model=DisputeRead)
def get_dispute(
    dispute_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Dispute:
    return dispute_service.get_visible_dispute(db, principal, dispute_id)


@router.post("/{dispute_id}/close", response_model=DisputeActionRead)
def close_dispute(
    dispute_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> DisputeActionRead:
    return _action_read(dispute_service.close_dispute(db, principal, dispute_id))


@router.post("/{dispute_id}/read", response_model=DisputeRead)
def mark_dispute_read(
    dispute_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Dispute:
    return dispute_service.mark_read_by_admin(db, principal, dispute_id)
