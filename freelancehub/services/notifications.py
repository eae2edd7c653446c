"""Notification bus: append-only, per-recipient event log."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.orm import Session

from freelancehub.config import ADMIN_RECIPIENT, get_settings
from freelancehub.models.dispute import Dispute, DisputeStatus
from freelancehub.models.notification import (
    ACTION_REDIRECT_TO_BID,
    Notification,
    NotificationPriority,
    NotificationType,
)
from freelancehub.security import Principal
from freelancehub.services import alerts as alert_service
from freelancehub.utils.errors import Forbidden, NotFound
from freelancehub.utils.time import utcnow

logger = logging.getLogger(__name__)

ESCROW_TYPE_PREFIX = "escrow_"

T = TypeVar("T")


@dataclass(frozen=True)
class Recipient:
    """Exactly one logical recipient: a user, or the admin role as a whole."""

    user_id: int | None = None
    role: str | None = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.role is None):
            raise ValueError("A recipient is either a user id or a role, not both")

    @classmethod
    def user(cls, user_id: int) -> "Recipient":
        return cls(user_id=user_id)

    @classmethod
    def admin(cls) -> "Recipient":
        return cls(role=ADMIN_RECIPIENT)

    def clause(self) -> ColumnElement[bool]:
        if self.user_id is not None:
            return Notification.recipient_id == self.user_id
        return Notification.recipient_role == self.role


@dataclass
class NotificationDraft:
    """A notification waiting to be appended once its command has committed."""

    recipient: Recipient
    type: NotificationType
    content: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    project_id: int | None = None
    escrow_id: int | None = None
    bid_id: int | None = None
    dispute_id: int | None = None
    action_type: str | None = None
    action_text: str | None = None

    def build(self) -> Notification:
        return Notification(
            recipient_id=self.recipient.user_id,
            recipient_role=self.recipient.role,
            type=self.type.value,
            content=self.content,
            priority=self.priority.value,
            project_id=self.project_id,
            escrow_id=self.escrow_id,
            bid_id=self.bid_id,
            dispute_id=self.dispute_id,
            action_type=self.action_type,
            action_text=self.action_text,
            is_read=False,
        )


@dataclass
class NotificationFilter:
    unread_only: bool = False
    type: str | None = None
    type_prefix: str | None = None
    project_id: int | None = None
    escrow_id: int | None = None


@dataclass
class ActionResult(Generic[T]):
    """Outcome of a lifecycle command: the mutated entity and what was delivered."""

    entity: T
    notifications: list[Notification] = field(default_factory=list)


def recipients_for(principal: Principal) -> ColumnElement[bool]:
    """Everything addressed to the principal, including role-wide admin items."""

    own = Notification.recipient_id == principal.id
    if principal.is_admin:
        return or_(own, Notification.recipient_role == ADMIN_RECIPIENT)
    return own


def append(db: Session, draft: NotificationDraft) -> Notification:
    """Insert one notification row and commit it on its own."""

    notification = draft.build()
    db.add(notification)
    db.commit()
    db.refresh(notification)
    logger.info(
        "Notification appended",
        extra={
            "notification_id": notification.id,
            "type": notification.type,
            "recipient_id": notification.recipient_id,
            "recipient_role": notification.recipient_role,
        },
    )
    return notification


def dispatch(db: Session, drafts: list[NotificationDraft]) -> list[Notification]:
    """Best-effort delivery of drafts produced by an already committed command.

    Each append is retried; a draft that still fails is logged and recorded as
    an operational alert. The primary mutation is never rolled back.
    """

    attempts = get_settings().NOTIFICATION_APPEND_ATTEMPTS
    delivered: list[Notification] = []
    for draft in drafts:
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                delivered.append(append(db, draft))
                last_error = None
                break
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                last_error = exc
                logger.warning(
                    "Notification append failed",
                    extra={"type": draft.type.value, "attempt": attempt, "error": str(exc)},
                )
        if last_error is not None:
            _report_undelivered(db, draft, last_error)
    return delivered


def _report_undelivered(db: Session, draft: NotificationDraft, error: Exception) -> None:
    payload = {
        "type": draft.type.value,
        "recipient_id": draft.recipient.user_id,
        "recipient_role": draft.recipient.role,
        "project_id": draft.project_id,
        "escrow_id": draft.escrow_id,
        "error": str(error),
    }
    logger.error("Notification dropped after retries", extra=payload)
    try:
        alert_service.create_alert(
            db,
            alert_type=alert_service.ALERT_NOTIFICATION_DELIVERY_FAILED,
            message=f"Could not deliver {draft.type.value} notification",
            actor_user_id=None,
            payload=payload,
        )
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.exception("Could not record notification delivery alert", extra=payload)


def get_notification(db: Session, notification_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise NotFound("Notification not found.", details={"notification_id": notification_id})
    return notification


def _is_addressed_to(notification: Notification, principal: Principal) -> bool:
    if notification.recipient_id is not None:
        return notification.recipient_id == principal.id
    return principal.is_admin and notification.recipient_role == ADMIN_RECIPIENT


def mark_read(db: Session, principal: Principal, notification_id: int) -> Notification:
    """Flip ``is_read`` to true. Calling it again is a no-op."""

    notification = get_notification(db, notification_id)
    if not _is_addressed_to(notification, principal):
        raise Forbidden("Notification belongs to another recipient.")
    if notification.is_read:
        return notification

    db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(
    db: Session,
    recipient: Recipient,
    *,
    type_prefix: str | None = None,
    escrow_id: int | None = None,
) -> int:
    """Mark every unread notification for ``recipient`` as read; returns how many flipped."""

    stmt = (
        update(Notification)
        .where(recipient.clause(), Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if type_prefix:
        stmt = stmt.where(Notification.type.startswith(type_prefix, autoescape=True))
    if escrow_id is not None:
        stmt = stmt.where(Notification.escrow_id == escrow_id)
    result = db.execute(stmt)
    db.commit()
    db.expire_all()
    return result.rowcount


def recipient_for_principal(principal: Principal, *, as_admin_role: bool = False) -> Recipient:
    if as_admin_role and principal.is_admin:
        return Recipient.admin()
    return Recipient.user(principal.id)


def query(db: Session, principal: Principal, flt: NotificationFilter | None = None) -> list[Notification]:
    """Return the principal's notifications in ascending timestamp order."""

    flt = flt or NotificationFilter()
    stmt = select(Notification).where(recipients_for(principal))
    if flt.unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    if flt.type:
        stmt = stmt.where(Notification.type == flt.type)
    if flt.type_prefix:
        stmt = stmt.where(Notification.type.startswith(flt.type_prefix, autoescape=True))
    if flt.project_id is not None:
        stmt = stmt.where(Notification.project_id == flt.project_id)
    if flt.escrow_id is not None:
        stmt = stmt.where(Notification.escrow_id == flt.escrow_id)
    stmt = stmt.order_by(Notification.created_at.asc(), Notification.id.asc())
    return list(db.scalars(stmt).all())


def unread_counts(db: Session, principal: Principal) -> dict[str, int]:
    """Badge counters, read straight from the store."""

    unread = db.scalar(
        select(func.count(Notification.id)).where(recipients_for(principal), Notification.is_read.is_(False))
    )
    counts = {"notifications": int(unread or 0), "escrow_notifications": 0, "disputes": 0}
    if principal.is_admin:
        counts["escrow_notifications"] = int(
            db.scalar(
                select(func.count(Notification.id)).where(
                    Notification.recipient_role == ADMIN_RECIPIENT,
                    Notification.is_read.is_(False),
                    Notification.type.startswith(ESCROW_TYPE_PREFIX, autoescape=True),
                )
            )
            or 0
        )
        counts["disputes"] = int(
            db.scalar(
                select(func.count(Dispute.id)).where(
                    Dispute.status == DisputeStatus.PENDING,
                    Dispute.is_read_by_admin.is_(False),
                )
            )
            or 0
        )
    return counts


def pending_settlement_request(db: Session, project_id: int, bid_id: int | None = None) -> Notification | None:
    """The unresolved pay-request for a project, if the client has sent one."""

    stmt = select(Notification).where(
        Notification.project_id == project_id,
        Notification.type == NotificationType.PAYMENT_SETTLEMENT_REQUEST.value,
        Notification.action_type == ACTION_REDIRECT_TO_BID,
        Notification.action_resolved_at.is_(None),
    )
    if bid_id is not None:
        stmt = stmt.where(Notification.bid_id == bid_id)
    return db.scalars(stmt.order_by(Notification.id.desc()).limit(1)).first()


def resolve_settlement_requests(db: Session, project_id: int) -> int:
    """Consume every open pay-request for a project; runs inside the caller's transaction."""

    now = utcnow()
    result = db.execute(
        update(Notification)
        .where(
            Notification.project_id == project_id,
            Notification.type == NotificationType.PAYMENT_SETTLEMENT_REQUEST.value,
            Notification.action_resolved_at.is_(None),
        )
        .values(action_resolved_at=now, is_read=True, read_at=func.coalesce(Notification.read_at, now))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


__all__ = [
    "ActionResult",
    "ESCROW_TYPE_PREFIX",
    "NotificationDraft",
    "NotificationFilter",
    "Recipient",
    "append",
    "dispatch",
    "get_notification",
    "mark_all_read",
    "mark_read",
    "pending_settlement_request",
    "query",
    "recipient_for_principal",
    "recipients_for",
    "resolve_settlement_requests",
    "unread_counts",
]
