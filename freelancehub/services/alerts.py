"""Alert service helpers."""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from freelancehub.models.alert import Alert

logger = logging.getLogger(__name__)

ALERT_NOTIFICATION_DELIVERY_FAILED = "NOTIFICATION_DELIVERY_FAILED"


def create_alert(db: Session, *, alert_type: str, message: str, actor_user_id: int | None, payload: dict[str, Any]) -> Alert:
    """Persist an alert in the database."""

    alert = Alert(type=alert_type, message=message[:255], actor_user_id=actor_user_id, payload_json=payload)
    db.add(alert)
    db.commit()
    db.refresh(alert)
    logger.warning("Alert created", extra={"type": alert_type, "payload": payload})
    return alert


def list_alerts(db: Session, alert_type: str | None = None) -> list[Alert]:
    stmt = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc())
    if alert_type:
        stmt = stmt.where(Alert.type == alert_type)
    return list(db.scalars(stmt).all())
