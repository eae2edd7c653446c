"""Alerts endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.alert import Alert
from freelancehub.models.user import UserRole
from freelancehub.schemas.alert import AlertRead
from freelancehub.security import require_roles
from freelancehub.services import alerts as alert_service

router = APIRouter(prefix="/alerts", tags=["alerts"], dependencies=[Depends(require_roles(UserRole.ADMIN))])


@router.get("", response_model=list[AlertRead], status_code=status.HTTP_200_OK)
def list_alerts(alert_type: str | None = Query(default=None, alias="type"), db: Session = Depends(get_db)) -> list[Alert]:
    return alert_service.list_alerts(db, alert_type)
