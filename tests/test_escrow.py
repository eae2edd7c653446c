from decimal import Decimal

import pytest
from sqlalchemy import update

from freelancehub.models import Escrow, EscrowStatus, ProjectStatus
from freelancehub.schemas.escrow import EscrowAdvance, EscrowFund
from freelancehub.services import bids as bid_service
from freelancehub.services import escrow as escrow_service
from freelancehub.services import notifications as notification_service
from freelancehub.services import projects as project_service
from freelancehub.services.uow import swap_status
from freelancehub.utils.errors import (
    Conflict,
    Forbidden,
    InvalidStateTransition,
    PreconditionFailed,
    Unauthorized,
    ValidationFailed,
)


def _fund(db_session, client_user, project, bid, principal_of, **extra):
    payload = EscrowFund(project_id=project.id, bid_id=bid.id, **extra)
    return escrow_service.fund_escrow(db_session, principal_of(client_user), payload)


def test_escrow_happy_path_closes_project(
    db_session, assigned_project, client_user, freelancer_user, admin_user, principal_of
):
    project, bid = assigned_project

    funded = _fund(db_session, client_user, project, bid, principal_of)
    escrow = funded.entity
    assert escrow.status == EscrowStatus.PENDING
    assert escrow.amount == Decimal("800.00")
    assert escrow.freelancer_id == freelancer_user.id
    assert escrow.project_title == project.title
    delivered = {(n.type, n.recipient_id, n.recipient_role) for n in funded.notifications}
    assert delivered == {
        ("escrow_funds_received", None, "admin"),
        ("escrow_funds_sent", freelancer_user.id, None),
    }

    completed = project_service.complete_project(db_session, principal_of(freelancer_user), project.id)
    assert [n.type for n in completed.notifications] == ["project_completed", "escrow_work_completed"]
    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.IN_PROGRESS

    approved = escrow_service.advance_escrow(
        db_session, principal_of(client_user), escrow.id, EscrowAdvance(status=EscrowStatus.READY_FOR_RELEASE)
    )
    assert approved.entity.status == EscrowStatus.READY_FOR_RELEASE
    assert approved.entity.client_approved_at is not None
    assert [n.type for n in approved.notifications] == ["escrow_client_approved_work"]
    assert approved.notifications[0].recipient_role == "admin"

    released = escrow_service.advance_escrow(
        db_session,
        principal_of(admin_user),
        escrow.id,
        EscrowAdvance(status=EscrowStatus.RELEASED, notes="Paid out"),
    )
    assert released.entity.status == EscrowStatus.RELEASED
    assert released.entity.admin_released_at is not None
    assert "Paid out" in released.entity.notes
    assert [(n.type, n.recipient_id) for n in released.notifications] == [
        ("escrow_funds_released", freelancer_user.id)
    ]
    db_session.refresh(project)
    assert project.status == ProjectStatus.CLOSED
    assert project.freelancer_id == freelancer_user.id


def test_second_funding_is_rejected(db_session, assigned_project, client_user, principal_of):
    project, bid = assigned_project
    _fund(db_session, client_user, project, bid, principal_of)

    with pytest.raises(Conflict):
        _fund(db_session, client_user, project, bid, principal_of)
    assert len(escrow_service.list_escrows(db_session, principal_of(client_user), project_id=project.id)) == 1


def test_funding_requires_accepted_bid(db_session, client_user, freelancer_user, make_project, place_bid, principal_of):
    project = make_project(client_user)
    bid = place_bid(freelancer_user, project)
    with pytest.raises(PreconditionFailed):
        _fund(db_session, client_user, project, bid, principal_of)


def test_funding_amount_must_match_bid(db_session, assigned_project, client_user, principal_of):
    project, bid = assigned_project
    with pytest.raises(ValidationFailed):
        _fund(db_session, client_user, project, bid, principal_of, amount=Decimal("799.99"))
    funded = _fund(db_session, client_user, project, bid, principal_of, amount=Decimal("800"))
    assert funded.entity.amount == Decimal("800.00")


def test_funding_by_another_client(db_session, assigned_project, other_client, principal_of):
    project, bid = assigned_project
    with pytest.raises(Forbidden):
        _fund(db_session, other_client, project, bid, principal_of)


def test_released_escrow_cannot_be_cancelled(
    db_session, assigned_project, client_user, freelancer_user, admin_user, principal_of
):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity
    project_service.complete_project(db_session, principal_of(freelancer_user), project.id)
    escrow_service.advance_escrow(
        db_session, principal_of(client_user), escrow.id, EscrowAdvance(status=EscrowStatus.READY_FOR_RELEASE)
    )
    escrow_service.advance_escrow(
        db_session, principal_of(admin_user), escrow.id, EscrowAdvance(status=EscrowStatus.RELEASED)
    )

    with pytest.raises(InvalidStateTransition):
        escrow_service.advance_escrow(
            db_session, principal_of(admin_user), escrow.id, EscrowAdvance(status=EscrowStatus.CANCELLED)
        )
    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.RELEASED


def test_only_admin_releases(db_session, assigned_project, client_user, freelancer_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity
    project_service.complete_project(db_session, principal_of(freelancer_user), project.id)
    escrow_service.advance_escrow(
        db_session, principal_of(client_user), escrow.id, EscrowAdvance(status=EscrowStatus.READY_FOR_RELEASE)
    )

    for user in (client_user, freelancer_user):
        with pytest.raises(Unauthorized):
            escrow_service.advance_escrow(
                db_session, principal_of(user), escrow.id, EscrowAdvance(status=EscrowStatus.RELEASED)
            )


def test_approval_waits_for_completed_project(db_session, assigned_project, client_user, freelancer_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity
    escrow_service.advance_escrow(
        db_session, principal_of(freelancer_user), escrow.id, EscrowAdvance(status=EscrowStatus.IN_PROGRESS)
    )

    with pytest.raises(PreconditionFailed):
        escrow_service.advance_escrow(
            db_session, principal_of(client_user), escrow.id, EscrowAdvance(status=EscrowStatus.READY_FOR_RELEASE)
        )


def test_cancelled_escrow_can_be_funded_again(db_session, assigned_project, client_user, principal_of):
    project, bid = assigned_project
    first = _fund(db_session, client_user, project, bid, principal_of).entity

    cancelled = escrow_service.advance_escrow(
        db_session, principal_of(client_user), first.id, EscrowAdvance(status=EscrowStatus.CANCELLED)
    )
    assert cancelled.entity.status == EscrowStatus.CANCELLED
    assert [n.type for n in cancelled.notifications] == ["escrow_cancelled"]

    second = _fund(db_session, client_user, project, bid, principal_of).entity
    assert second.id != first.id
    assert second.status == EscrowStatus.PENDING


def test_cancelling_project_cancels_escrow(db_session, assigned_project, client_user, freelancer_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity

    result = project_service.cancel_project(db_session, principal_of(client_user), project.id)

    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.CANCELLED
    assert "cancelled" in escrow.notes
    assert [(n.type, n.recipient_id) for n in result.notifications] == [
        ("project_cancelled", freelancer_user.id),
        ("escrow_cancelled", client_user.id),
    ]


def test_withdrawing_accepted_bid_cancels_escrow(db_session, assigned_project, client_user, freelancer_user, principal_of):

    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity

    result = bid_service.withdraw_bid(db_session, principal_of(freelancer_user), bid.id)

    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.CANCELLED
    assert escrow.bid_id is None
    assert [n.type for n in result.notifications] == ["bid_cancelled", "escrow_cancelled"]


def test_escrow_and_settlement_are_exclusive(
    db_session, assigned_project, client_user, freelancer_user, make_project, place_bid, other_freelancer, principal_of
):
    project, bid = assigned_project
    project_service.complete_project(db_session, principal_of(freelancer_user), project.id)
    project_service.settle_project(db_session, principal_of(client_user), project.id)
    with pytest.raises(Conflict):
        _fund(db_session, client_user, project, bid, principal_of)


    other = make_project(client_user, title="Second job")
    other_bid = place_bid(other_freelancer, other)
    bid_service.accept_bid(db_session, principal_of(client_user), other_bid.id)
    _fund(db_session, client_user, other, other_bid, principal_of)
    project_service.complete_project(db_session, principal_of(other_freelancer), other.id)
    with pytest.raises(Conflict):
        project_service.settle_project(db_session, principal_of(client_user), other.id)


def test_directly_paid_project_cannot_be_funded(db_session, assigned_project, client_user, freelancer_user, principal_of):
    project, bid = assigned_project
    project_service.complete_project(db_session, principal_of(freelancer_user), project.id)
    project_service.settle_project(db_session, principal_of(client_user), project.id)
    project_service.accept_payment(db_session, principal_of(freelancer_user), project.id)
    assert project.status == ProjectStatus.CLOSED

    with pytest.raises(PreconditionFailed):
        _fund(db_session, client_user, project, bid, principal_of)
    assert escrow_service.list_escrows(db_session, principal_of(client_user), project_id=project.id) == []


def test_admin_close_waits_for_live_escrow(db_session, assigned_project, client_user, admin_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity

    with pytest.raises(Conflict):
        project_service.admin_close_project(db_session, principal_of(admin_user), project.id)
    db_session.refresh(project)
    assert project.status == ProjectStatus.IN_PROGRESS
    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.PENDING

    escrow_service.advance_escrow(
        db_session, principal_of(admin_user), escrow.id, EscrowAdvance(status=EscrowStatus.CANCELLED)
    )
    closed = project_service.admin_close_project(db_session, principal_of(admin_user), project.id)
    assert closed.entity.status == ProjectStatus.CLOSED


def test_escrow_visibility(db_session, assigned_project, client_user, other_client, freelancer_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity

    assert escrow_service.get_visible_escrow(db_session, principal_of(freelancer_user), escrow.id).id == escrow.id
    with pytest.raises(Forbidden):
        escrow_service.get_visible_escrow(db_session, principal_of(other_client), escrow.id)
    assert escrow_service.list_escrows(db_session, principal_of(other_client)) == []


def test_statistics(db_session, assigned_project, client_user, admin_user, principal_of):
    project, bid = assigned_project
    first = _fund(db_session, client_user, project, bid, principal_of).entity
    escrow_service.advance_escrow(
        db_session, principal_of(client_user), first.id, EscrowAdvance(status=EscrowStatus.CANCELLED)
    )
    _fund(db_session, client_user, project, bid, principal_of)

    with pytest.raises(Unauthorized):
        escrow_service.escrow_statistics(db_session, principal_of(client_user))

    stats = escrow_service.escrow_statistics(db_session, principal_of(admin_user))
    assert stats["total"] == 2
    assert stats["by_status"]["cancelled"] == 1
    assert stats["by_status"]["pending"] == 1
    assert stats["total_amount"] == Decimal("800.00")
    assert stats["held_amount"] == Decimal("800.00")
    assert stats["released_amount"] == Decimal("0")
    assert stats["unread_notifications"] == 2

    notification_service.mark_all_read(db_session, notification_service.Recipient.admin(), type_prefix="escrow_")
    assert escrow_service.escrow_statistics(db_session, principal_of(admin_user))["unread_notifications"] == 0


def test_compare_and_swap_detects_concurrent_writer(db_session, assigned_project, client_user, principal_of):
    project, bid = assigned_project
    escrow = _fund(db_session, client_user, project, bid, principal_of).entity

    # Another writer cancels the escrow behind this session's back.
    db_session.execute(
        update(Escrow)
        .where(Escrow.id == escrow.id)
        .values(status=EscrowStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()

    assert not swap_status(db_session, Escrow, escrow.id, [EscrowStatus.PENDING], status=EscrowStatus.IN_PROGRESS)
    db_session.rollback()
    db_session.refresh(escrow)
    assert escrow.status == EscrowStatus.CANCELLED
