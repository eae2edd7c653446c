import pytest

from freelancehub.schemas.message import MessageCreate
from freelancehub.services import bids as bid_service
from freelancehub.services import messages as message_service
from freelancehub.utils.errors import Forbidden, ValidationFailed


def test_thread_merges_messages_and_notifications(
    db_session, client_user, freelancer_user, make_project, place_bid, principal_of
):
    project = make_project(client_user)
    bid = place_bid(freelancer_user, project)
    freelancer = principal_of(freelancer_user)
    client = principal_of(client_user)

    question = message_service.send_message(
        db_session, freelancer, project.id, MessageCreate(recipient_id=client_user.id, content="Is hosting included?")
    )
    answer = message_service.send_message(
        db_session, client, project.id, MessageCreate(recipient_id=freelancer_user.id, content="Yes, on our servers.")
    )
    bid_service.accept_bid(db_session, client, bid.id)

    items = message_service.thread(db_session, freelancer, project.id)

    assert [(item["kind"], item["id"]) for item in items[:2]] == [("message", question.id), ("message", answer.id)]
    assert items[-1]["kind"] == "notification"
    assert items[-1]["type"] == "bid_accepted"
    stamps = [item["created_at"] for item in items]
    assert stamps == sorted(stamps)


def test_thread_can_focus_on_one_counterpart(
    db_session, client_user, freelancer_user, other_freelancer, make_project, place_bid, principal_of
):
    project = make_project(client_user)
    place_bid(freelancer_user, project)
    place_bid(other_freelancer, project, amount="650.00")
    client = principal_of(client_user)
    for user in (freelancer_user, other_freelancer):
        message_service.send_message(
            db_session, client, project.id, MessageCreate(recipient_id=user.id, content=f"Hi {user.username}")
        )

    focused = message_service.thread(db_session, client, project.id, counterpart_id=other_freelancer.id)
    assert [item["content"] for item in focused] == [f"Hi {other_freelancer.username}"]


def test_message_participants(
    db_session, client_user, freelancer_user, other_freelancer, other_client, make_project, place_bid, principal_of
):
    project = make_project(client_user)
    place_bid(freelancer_user, project)

    with pytest.raises(ValidationFailed):
        message_service.send_message(
            db_session,
            principal_of(client_user),
            project.id,
            MessageCreate(recipient_id=other_freelancer.id, content="Want to bid?"),
        )
    with pytest.raises(ValidationFailed):
        message_service.send_message(
            db_session,
            principal_of(freelancer_user),
            project.id,
            MessageCreate(recipient_id=other_freelancer.id, content="Psst"),
        )
    with pytest.raises(Forbidden):
        message_service.send_message(
            db_session,
            principal_of(other_client),
            project.id,
            MessageCreate(recipient_id=client_user.id, content="Hello"),
        )
    with pytest.raises(ValidationFailed):
        message_service.send_message(
            db_session,
            principal_of(freelancer_user),
            project.id,
            MessageCreate(recipient_id=client_user.id, content="  "),
        )
    with pytest.raises(Forbidden):
        message_service.thread(db_session, principal_of(other_freelancer), project.id)
