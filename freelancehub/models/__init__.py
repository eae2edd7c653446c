"""ORM models package."""
from .alert import Alert
from .api_key import ApiKey
from .audit import AuditLog
from .base import Base
from .bid import Bid, BidStatus
from .dispute import Dispute, DisputeStatus
from .escrow import LIVE_ESCROW_STATUSES, Escrow, EscrowStatus
from .message import Message
from .notification import Notification, NotificationPriority, NotificationType
from .project import ASSIGNED_STATUSES, Project, ProjectStatus
from .review import Review
from .user import User, UserRole

__all__ = [
    "Alert",
    "ApiKey",
    "ASSIGNED_STATUSES",
    "AuditLog",
    "Base",
    "Bid",
    "BidStatus",
    "Dispute",
    "DisputeStatus",
    "Escrow",
    "EscrowStatus",
    "LIVE_ESCROW_STATUSES",
    "Message",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Project",
    "ProjectStatus",
    "Review",
    "User",
    "UserRole",
]
