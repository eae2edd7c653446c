"""Project conversation endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.message import Message
from freelancehub.schemas.message import MessageCreate, MessageRead, ThreadItem
from freelancehub.security import Principal, require_principal
from freelancehub.services import messages as message_service

router = APIRouter(prefix="/projects/{project_id}/messages", tags=["messages"])


@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
def send_message(
    project_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Message:
    return message_service.send_message(db, principal, project_id, payload)


@router.get("", response_model=list[ThreadItem])
def get_thread(
    project_id: int,
    with_user: int | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[dict]:
    return message_service.thread(db, principal, project_id, counterpart_id=with_user)
