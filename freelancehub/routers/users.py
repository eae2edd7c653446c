"""User endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.user import User, UserRole
from freelancehub.schemas.user import SuspensionRead, UserCreate, UserRead
from freelancehub.security import Principal, require_principal, require_roles
from freelancehub.services import users as user_service
from freelancehub.utils.audit import actor_label, log_audit

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> User:
    """Create a new user."""

    return user_service.create_user(db, payload, actor=actor_label(principal))


@router.get("/me", response_model=UserRead)
def read_me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> User:
    return user_service.get_user(db, principal.id)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> User:
    """Retrieve a user by identifier."""

    user = user_service.get_user(db, user_id)
    log_audit(
        db,
        actor=actor_label(principal),
        action="READ_USER",
        entity="User",
        entity_id=user.id,
        data={"reason": "api_read"},
    )
    db.commit()
    return user


@router.post("/{user_id}/suspend", response_model=SuspensionRead)
def suspend_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> SuspensionRead:
    result = user_service.suspend_user(db, principal, user_id)
    return SuspensionRead(
        user=UserRead.model_validate(result.entity),
        notified_user_ids=[item.recipient_id for item in result.notifications if item.recipient_id is not None],
    )


@router.post("/{user_id}/reactivate", response_model=UserRead)
def reactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
) -> User:
    return user_service.reactivate_user(db, principal, user_id)
