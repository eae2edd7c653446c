"""Schema package exports."""
from .alert import AlertRead
from .apikey import ApiKeyCreate, ApiKeyCreateOut, ApiKeyRead
from .bid import BidAcceptRead, BidCreate, BidRead, BidUpdate, BidWithdrawRead
from .dispute import DisputeActionRead, DisputeCreate, DisputeRead
from .escrow import EscrowActionRead, EscrowAdvance, EscrowFund, EscrowRead, EscrowStatistics
from .message import MessageCreate, MessageRead, ThreadItem
from .notification import MarkAllReadPayload, MarkAllReadResult, NotificationRead, UnreadCounts
from .project import ClosedProjectCount, ProjectActionRead, ProjectCreate, ProjectRead, ProjectUpdate
from .review import ReviewCreate, ReviewCreated, ReviewRead
from .user import SuspensionRead, UserCreate, UserRead

__all__ = [
    "AlertRead",
    "ApiKeyCreate",
    "ApiKeyCreateOut",
    "ApiKeyRead",
    "BidAcceptRead",
    "BidCreate",
    "BidRead",
    "BidUpdate",
    "BidWithdrawRead",
    "ClosedProjectCount",
    "DisputeActionRead",
    "DisputeCreate",
    "DisputeRead",
    "EscrowActionRead",
    "EscrowAdvance",
    "EscrowFund",
    "EscrowRead",
    "EscrowStatistics",
    "MarkAllReadPayload",
    "MarkAllReadResult",
    "MessageCreate",
    "MessageRead",
    "NotificationRead",
    "ProjectActionRead",
    "ProjectCreate",
    "ProjectRead",
    "ProjectUpdate",
    "ReviewCreate",
    "ReviewCreated",
    "ReviewRead",
    "SuspensionRead",
    "ThreadItem",
    "UnreadCounts",
    "UserCreate",
    "UserRead",
]
