"""Builders turning service results into response models."""
from __future__ import annotations

from collections.abc import Iterable

from freelancehub.models.notification import Notification
from freelancehub.schemas.notification import NotificationRead


def notification_reads(notifications: Iterable[Notification]) -> list[NotificationRead]:
    return [NotificationRead.model_validate(item) for item in notifications]
