from decimal import Decimal

import pytest

from freelancehub.schemas.review import ReviewCreate
from freelancehub.services import projects as project_service
from freelancehub.services import reviews as review_service
from freelancehub.utils.errors import NotFound, PreconditionFailed, Unauthorized, ValidationFailed


@pytest.fixture
def closed_project(db_session, assigned_project, admin_user, principal_of):
    project, _ = assigned_project
    project_service.admin_close_project(db_session, principal_of(admin_user), project.id)
    return project


def test_review_updates_mean_rating(db_session, closed_project, client_user, freelancer_user, principal_of):
    client = principal_of(client_user)

    review, rating = review_service.create_review(
        db_session, client, ReviewCreate(freelancer_id=freelancer_user.id, rating=5, comment="Great work")
    )
    assert review.project_id is None
    assert rating == Decimal("5.00")

    _, rating = review_service.create_review(
        db_session,
        client,
        ReviewCreate(freelancer_id=freelancer_user.id, rating=4, comment="Good again", project_id=closed_project.id),
    )
    assert rating == Decimal("4.50")
    db_session.refresh(freelancer_user)
    assert freelancer_user.rating == Decimal("4.50")
    assert len(review_service.list_reviews(db_session, freelancer_user.id)) == 2


def test_review_requires_closed_project(db_session, assigned_project, client_user, freelancer_user, principal_of):
    with pytest.raises(PreconditionFailed):
        review_service.create_review(
            db_session,
            principal_of(client_user),
            ReviewCreate(freelancer_id=freelancer_user.id, rating=5, comment="Too early"),
        )


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_range(db_session, closed_project, client_user, freelancer_user, principal_of, rating):
    with pytest.raises(ValidationFailed):
        review_service.create_review(
            db_session,
            principal_of(client_user),
            ReviewCreate(freelancer_id=freelancer_user.id, rating=rating, comment="Out of range"),
        )


def test_review_guards(db_session, closed_project, client_user, freelancer_user, other_client, principal_of):
    with pytest.raises(Unauthorized):
        review_service.create_review(
            db_session,
            principal_of(freelancer_user),
            ReviewCreate(freelancer_id=freelancer_user.id, rating=5, comment="Self review"),
        )
    with pytest.raises(NotFound):
        review_service.create_review(
            db_session,
            principal_of(client_user),
            ReviewCreate(freelancer_id=client_user.id, rating=5, comment="Not a freelancer"),
        )
    with pytest.raises(PreconditionFailed):
        review_service.create_review(
            db_session,
            principal_of(other_client),
            ReviewCreate(freelancer_id=freelancer_user.id, rating=1, comment="Never worked together"),
        )
    with pytest.raises(ValidationFailed):
        review_service.create_review(
            db_session,
            principal_of(client_user),
            ReviewCreate(freelancer_id=freelancer_user.id, rating=3, comment=" "),
        )
