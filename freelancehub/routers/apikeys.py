"""API key administration."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.api_key import ApiKey
from freelancehub.models.user import UserRole
from freelancehub.schemas.apikey import ApiKeyCreate, ApiKeyCreateOut, ApiKeyRead
from freelancehub.security import Principal, require_roles
from freelancehub.services import users as user_service
from freelancehub.utils.audit import actor_label, log_audit
from freelancehub.utils.errors import NotFound

router = APIRouter(prefix="/apikeys", tags=["apikeys"])


def _get_key(db: Session, api_key_id: int) -> ApiKey:
    row = db.get(ApiKey, api_key_id)
    if row is None:
        raise NotFound("API key not found.", details={"api_key_id": api_key_id})
    return row


@router.post("", response_model=ApiKeyCreateOut, status_code=status.HTTP_201_CREATED)
def create_api_key(
    payload: ApiKeyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> ApiKeyCreateOut:
    """Issue a key for a user and return the raw value exactly once."""

    user = user_service.get_user(db, payload.user_id)
    row, raw = user_service.issue_api_key(
        db, user, name=payload.name, days_valid=payload.days_valid, actor=actor_label(principal)
    )
    return ApiKeyCreateOut(**ApiKeyRead.model_validate(row).model_dump(), key=raw)


@router.get("/{api_key_id}", response_model=ApiKeyRead)
def get_apikey(
    api_key_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> ApiKey:
    return _get_key(db, api_key_id)


@router.delete("/{api_key_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def revoke_apikey(
    api_key_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> Response:
    row = _get_key(db, api_key_id)
    if not row.is_active:
        log_audit(
            db,
            actor=actor_label(principal),
            action="REVOKE_API_KEY_NOOP",
            entity="ApiKey",
            entity_id=api_key_id,
            data={},
        )
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    row.is_active = False
    log_audit(
        db,
        actor=actor_label(principal),
        action="REVOKE_API_KEY",
        entity="ApiKey",
        entity_id=api_key_id,
        data={"name": row.name},
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
