import pytest
from sqlalchemy import select

from freelancehub.bootstrap import create_admin
from freelancehub.models import AuditLog, UserRole
from freelancehub.schemas.user import UserCreate
from freelancehub.services import users as user_service
from freelancehub.utils.apikey import find_valid_key
from freelancehub.utils.errors import Conflict, Unauthorized, ValidationFailed


def test_create_user_and_duplicate(db_session):
    payload = UserCreate(username="zoe", email="zoe@example.com", role=UserRole.FREELANCER)
    user = user_service.create_user(db_session, payload, actor="admin")
    assert user.role == UserRole.FREELANCER
    assert user.is_active

    with pytest.raises(Conflict):
        user_service.create_user(db_session, payload)

    audit = db_session.scalars(select(AuditLog).where(AuditLog.action == "CREATE_USER")).one()
    assert audit.data_json["email"] == "***@example.com"


def test_issue_api_key_returns_raw_value_once(db_session, freelancer_user):
    row, raw = user_service.issue_api_key(db_session, freelancer_user, name="cli", days_valid=30)

    assert raw.startswith(row.prefix)
    assert row.key_hash != raw
    assert find_valid_key(db_session, raw).id == row.id
    with pytest.raises(ValidationFailed):
        user_service.issue_api_key(db_session, freelancer_user, name="  ")


def test_suspension_warns_the_other_party(
    db_session, assigned_project, client_user, freelancer_user, admin_user, principal_of
):
    with pytest.raises(Unauthorized):
        user_service.suspend_user(db_session, principal_of(client_user), freelancer_user.id)

    result = user_service.suspend_user(db_session, principal_of(admin_user), freelancer_user.id)

    assert result.entity.is_active is False
    assert [(n.type, n.recipient_id, n.priority) for n in result.notifications] == [
        ("user_suspended", client_user.id, "high")
    ]

    again = user_service.suspend_user(db_session, principal_of(admin_user), freelancer_user.id)
    assert again.notifications == []

    restored = user_service.reactivate_user(db_session, principal_of(admin_user), freelancer_user.id)
    assert restored.is_active is True


def test_bootstrap_admin_key(db_session):
    row, raw = create_admin(db_session, username="root", email="root@example.com")
    assert row.user.role == UserRole.ADMIN
    assert find_valid_key(db_session, raw).id == row.id

    second, _ = create_admin(db_session, username="root", email="root@example.com", key_name="rotated")
    assert second.user_id == row.user_id
