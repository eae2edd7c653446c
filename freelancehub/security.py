"""Identity adapter: resolves API keys into principals and enforces roles."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from freelancehub.config import DEV_API_KEY_ALLOWED, ENV
from freelancehub.db import get_db
from freelancehub.models.user import User, UserRole
from freelancehub.utils.apikey import find_valid_key, is_dev_key
from freelancehub.utils.audit import log_audit
from freelancehub.utils.errors import Unauthorized, error_response
from freelancehub.utils.time import utcnow

# Identifier of the bootstrap admin behind the legacy development key.
LEGACY_ADMIN_ID = 0


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as seen by the core services."""

    id: int
    role: UserRole
    username: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, username=user.username)


def require_role(principal: Principal, *roles: UserRole, action: str = "perform this action") -> None:
    """Raise ``Unauthorized`` unless the principal holds one of ``roles``."""

    if principal.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise Unauthorized(f"Only {allowed} principals can {action}.")


def _extract_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str | None:
    """Read the key from ``Authorization: Bearer ...`` or ``X-API-Key``."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def require_principal(
    db: Session = Depends(get_db),
    token: str | None = Depends(_extract_key),
) -> Principal:
    """Validate the API key and return the principal it belongs to."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_response("NO_API_KEY", "API key required."),
        )

    if is_dev_key(token):
        if not DEV_API_KEY_ALLOWED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=error_response("LEGACY_KEY_FORBIDDEN", "Legacy dev key disabled."),
            )
        log_audit(
            db,
            actor="legacy-apikey",
            action="LEGACY_API_KEY_USED",
            entity="ApiKey",
            entity_id=LEGACY_ADMIN_ID,
            data={"env": ENV},
        )
        db.commit()
        return Principal(id=LEGACY_ADMIN_ID, role=UserRole.ADMIN, username="legacy")

    key = find_valid_key(db, token)
    user = key.user if key is not None else None
    if key is None or user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_response("UNAUTHORIZED_KEY", "Invalid or expired API key"),
        )

    key.last_used_at = utcnow()
    db.commit()
    return Principal.from_user(user)


def require_roles(*roles: UserRole) -> Callable[..., Principal]:
    """Dependency factory restricting an endpoint to the given roles."""

    if not roles:
        raise RuntimeError("require_roles needs at least one role")

    def _dep(principal: Principal = Depends(require_principal)) -> Principal:
        require_role(principal, *roles)
        return principal

    return _dep


__all__ = ["LEGACY_ADMIN_ID", "Principal", "require_principal", "require_role", "require_roles"]
