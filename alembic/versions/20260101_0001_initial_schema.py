"""initial marketplace schema

Revision ID: 20260101_0001
Revises:
Create Date: 2026-01-01 00:00:00
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260101_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        *_timestamps(),
        sa.Column("username", sa.String(length=100), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("rating", sa.Numeric(3, 2), nullable=False),
    )

    op.create_table(
        "api_keys",
        *_timestamps(),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("prefix", sa.String(length=32), nullable=False),
        sa.Column("key_hash", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "projects",
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("budget", sa.Numeric(18, 2), nullable=False),
        sa.Column("required_skills", sa.JSON(), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("budget > 0", name="ck_project_budget_positive"),
    )
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_client_freelancer", "projects", ["client_id", "freelancer_id"])

    op.create_table(
        "bids",
        *_timestamps(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("timeline", sa.String(length=255), nullable=False),
        sa.Column("proposal", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.UniqueConstraint("project_id", "freelancer_id", name="uq_bid_project_freelancer"),
        sa.CheckConstraint("amount > 0", name="ck_bid_amount_positive"),
    )
    op.create_index("ix_bids_project_id", "bids", ["project_id"])
    op.create_index("ix_bids_freelancer_id", "bids", ["freelancer_id"])

    op.create_table(
        "escrows",
        *_timestamps(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("bid_id", sa.Integer(), sa.ForeignKey("bids.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("project_title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("client_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_escrow_amount_positive"),
    )
    op.create_index("ix_escrows_project_id", "escrows", ["project_id"])
    op.create_index("ix_escrows_client_id", "escrows", ["client_id"])
    op.create_index("ix_escrows_freelancer_id", "escrows", ["freelancer_id"])
    op.create_index("ix_escrows_status", "escrows", ["status"])
    op.create_index(
        "uq_escrows_project_not_cancelled",
        "escrows",
        ["project_id"],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )

    op.create_table(
        "notifications",
        *_timestamps(),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("recipient_role", sa.String(length=20), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=10), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("escrow_id", sa.Integer(), nullable=True),
        sa.Column("bid_id", sa.Integer(), nullable=True),
        sa.Column("dispute_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_type", sa.String(length=64), nullable=True),
        sa.Column("action_text", sa.String(length=64), nullable=True),
        sa.Column("action_resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(recipient_id IS NULL) != (recipient_role IS NULL)",
            name="ck_notification_single_recipient",
        ),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_project_id", "notifications", ["project_id"])
    op.create_index("ix_notifications_escrow_id", "notifications", ["escrow_id"])
    op.create_index("ix_notifications_recipient_read", "notifications", ["recipient_id", "is_read"])
    op.create_index("ix_notifications_role_read", "notifications", ["recipient_role", "is_read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "disputes",
        *_timestamps(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("project_title", sa.String(length=255), nullable=False),
        sa.Column("raiser_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("raiser_role", sa.String(length=32), nullable=False),
        sa.Column("other_party_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("other_party_role", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("is_read_by_admin", sa.Boolean(), nullable=False),
        sa.Column("closed_by_id", sa.Integer(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_disputes_project_id", "disputes", ["project_id"])
    op.create_index("ix_disputes_status", "disputes", ["status"])

    op.create_table(
        "messages",
        *_timestamps(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
    )
    op.create_index("ix_messages_project_created", "messages", ["project_id", "created_at"])

    op.create_table(
        "reviews",
        *_timestamps(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("freelancer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rating", sa.SmallInteger(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
    )
    op.create_index("ix_reviews_freelancer_id", "reviews", ["freelancer_id"])

    op.create_table(
        "audit_logs",
        *_timestamps(),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("data_json", sa.JSON(), nullable=False),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "alerts",
        *_timestamps(),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("message", sa.String(length=255), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=False),
    )
    op.create_index("ix_alerts_type", "alerts", ["type"])
    op.create_index("ix_alerts_created_at", "alerts", ["created_at"])


def downgrade() -> None:
    op.drop_table("alerts")
    op.drop_table("audit_logs")
    op.drop_table("reviews")
    op.drop_table("messages")
    op.drop_table("disputes")
    op.drop_table("notifications")
    op.drop_index("uq_escrows_project_not_cancelled", table_name="escrows")
    op.drop_table("escrows")
    op.drop_table("bids")
    op.drop_table("projects")
    op.drop_table("api_keys")
    op.drop_table("users")
