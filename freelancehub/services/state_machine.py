"""Transition tables for projects, bids, escrows and disputes.

Every lifecycle command consults these tables before touching the database,
so the legal edges live in one place:

    Project:  open -> in_progress -> completed -> closed
              open | in_progress | completed -> cancelled -> open
              completed -> in_progress (unmark)
              in_progress | completed -> open (accepted bid withdrawn)

    Bid:      pending -> accepted | rejected
              accepted -> rejected -> pending

    Escrow:   pending -> in_progress -> ready_for_release -> released
              any non-terminal -> cancelled

    Dispute:  pending -> closed

The functions are pure: they take the current state, the requested action and
the actor's role, and return the next state or raise.
"""

from __future__ import annotations

from enum import Enum

from freelancehub.models.bid import BidStatus
from freelancehub.models.dispute import DisputeStatus
from freelancehub.models.escrow import EscrowStatus
from freelancehub.models.project import ProjectStatus
from freelancehub.models.user import UserRole
from freelancehub.utils.errors import InvalidStateTransition, Unauthorized


class ProjectAction(str, Enum):
    ACCEPT_BID = "accept_bid"
    CANCEL = "cancel"
    REOPEN = "reopen"
    COMPLETE = "complete"
    UNMARK_COMPLETE = "unmark_complete"
    ACCEPT_PAYMENT = "accept_payment"
    ADMIN_CLOSE = "admin_close"
    WITHDRAW_ACCEPTED_BID = "withdraw_accepted_bid"


_PROJECT_TRANSITIONS: dict[ProjectAction, dict[ProjectStatus, ProjectStatus]] = {
    ProjectAction.ACCEPT_BID: {ProjectStatus.OPEN: ProjectStatus.IN_PROGRESS},
    ProjectAction.CANCEL: {
        ProjectStatus.OPEN: ProjectStatus.CANCELLED,
        ProjectStatus.IN_PROGRESS: ProjectStatus.CANCELLED,
        ProjectStatus.COMPLETED: ProjectStatus.CANCELLED,
    },
    ProjectAction.REOPEN: {ProjectStatus.CANCELLED: ProjectStatus.OPEN},
    ProjectAction.COMPLETE: {ProjectStatus.IN_PROGRESS: ProjectStatus.COMPLETED},
    ProjectAction.UNMARK_COMPLETE: {ProjectStatus.COMPLETED: ProjectStatus.IN_PROGRESS},
    ProjectAction.ACCEPT_PAYMENT: {ProjectStatus.COMPLETED: ProjectStatus.CLOSED},
    ProjectAction.ADMIN_CLOSE: {
        ProjectStatus.IN_PROGRESS: ProjectStatus.CLOSED,
        ProjectStatus.COMPLETED: ProjectStatus.CLOSED,
    },
    ProjectAction.WITHDRAW_ACCEPTED_BID: {
        ProjectStatus.IN_PROGRESS: ProjectStatus.OPEN,
        ProjectStatus.COMPLETED: ProjectStatus.OPEN,
    },
}

_PROJECT_ACTORS: dict[ProjectAction, frozenset[UserRole]] = {
    ProjectAction.ACCEPT_BID: frozenset({UserRole.CLIENT}),
    ProjectAction.CANCEL: frozenset({UserRole.CLIENT}),
    ProjectAction.REOPEN: frozenset({UserRole.CLIENT}),
    ProjectAction.COMPLETE: frozenset({UserRole.FREELANCER}),
    ProjectAction.UNMARK_COMPLETE: frozenset({UserRole.FREELANCER}),
    ProjectAction.ACCEPT_PAYMENT: frozenset({UserRole.FREELANCER}),
    ProjectAction.ADMIN_CLOSE: frozenset({UserRole.ADMIN}),
    ProjectAction.WITHDRAW_ACCEPTED_BID: frozenset({UserRole.FREELANCER}),
}

# Guards for commands that do not move the project status.
EDITABLE_PROJECT_STATUSES = frozenset(
    {ProjectStatus.OPEN, ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED}
)
DELETABLE_PROJECT_STATUSES = frozenset({ProjectStatus.OPEN, ProjectStatus.CANCELLED})
DISPUTABLE_PROJECT_STATUSES = frozenset({ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED})
FUNDABLE_PROJECT_STATUSES = frozenset({ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED})


_BID_TRANSITIONS: dict[BidStatus, frozenset[BidStatus]] = {
    BidStatus.PENDING: frozenset({BidStatus.ACCEPTED, BidStatus.REJECTED}),
    BidStatus.ACCEPTED: frozenset({BidStatus.REJECTED}),
    BidStatus.REJECTED: frozenset({BidStatus.PENDING}),
}

EDITABLE_BID_STATUSES = frozenset({BidStatus.PENDING})
WITHDRAWABLE_BID_STATUSES = frozenset({BidStatus.PENDING, BidStatus.ACCEPTED})


_ESCROW_TRANSITIONS: dict[EscrowStatus, frozenset[EscrowStatus]] = {
    EscrowStatus.PENDING: frozenset({EscrowStatus.IN_PROGRESS, EscrowStatus.CANCELLED}),
    EscrowStatus.IN_PROGRESS: frozenset({EscrowStatus.READY_FOR_RELEASE, EscrowStatus.CANCELLED}),
    EscrowStatus.READY_FOR_RELEASE: frozenset({EscrowStatus.RELEASED, EscrowStatus.CANCELLED}),
    EscrowStatus.RELEASED: frozenset(),
    EscrowStatus.CANCELLED: frozenset(),
}

# Who may move an escrow into each target state.
_ESCROW_ACTORS: dict[EscrowStatus, frozenset[UserRole]] = {
    EscrowStatus.IN_PROGRESS: frozenset({UserRole.FREELANCER, UserRole.ADMIN}),
    EscrowStatus.READY_FOR_RELEASE: frozenset({UserRole.CLIENT}),
    EscrowStatus.RELEASED: frozenset({UserRole.ADMIN}),
    EscrowStatus.CANCELLED: frozenset({UserRole.CLIENT, UserRole.ADMIN}),
}


_DISPUTE_TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    DisputeStatus.PENDING: frozenset({DisputeStatus.CLOSED}),
    DisputeStatus.CLOSED: frozenset(),
}


def _check_actor(allowed: frozenset[UserRole], role: UserRole, label: str) -> None:
    if role not in allowed:
        names = ", ".join(sorted(r.value for r in allowed))
        raise Unauthorized(f"Only {names} principals can {label}.")


def project_transition(current: ProjectStatus, action: ProjectAction, role: UserRole) -> ProjectStatus:
    """Return the status a project moves to when ``role`` performs ``action``."""

    _check_actor(_PROJECT_ACTORS[action], role, action.value.replace("_", " ") + " a project")
    target = _PROJECT_TRANSITIONS[action].get(current)
    if target is None:
        raise InvalidStateTransition(
            f"Cannot {action.value.replace('_', ' ')} a project that is {current.value}.",
            details={"status": current.value, "action": action.value},
        )
    return target


def can_transition_bid(current: BidStatus, target: BidStatus) -> bool:
    return target in _BID_TRANSITIONS[current]


def escrow_transition(current: EscrowStatus, target: EscrowStatus, role: UserRole) -> EscrowStatus:
    """Validate an escrow edge for ``role`` and return ``target``."""

    if target not in _ESCROW_ACTORS:
        raise InvalidStateTransition(
            f"Escrow cannot be moved to {target.value}.",
            details={"status": current.value, "target": target.value},
        )
    _check_actor(_ESCROW_ACTORS[target], role, f"move an escrow to {target.value}")
    if target not in _ESCROW_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Escrow cannot move from {current.value} to {target.value}.",
            details={"status": current.value, "target": target.value},
        )
    return target


def dispute_transition(current: DisputeStatus, target: DisputeStatus) -> DisputeStatus:
    if target not in _DISPUTE_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Dispute cannot move from {current.value} to {target.value}.",
            details={"status": current.value, "target": target.value},
        )
    return target


__all__ = [
    "DELETABLE_PROJECT_STATUSES",
    "DISPUTABLE_PROJECT_STATUSES",
    "EDITABLE_BID_STATUSES",
    "EDITABLE_PROJECT_STATUSES",
    "FUNDABLE_PROJECT_STATUSES",
    "WITHDRAWABLE_BID_STATUSES",
    "ProjectAction",
    "can_transition_bid",
    "dispute_transition",
    "escrow_transition",
    "project_transition",
]
