"""Create FCM token registry and notification tables

Revision ID: 3f1a7c2d9e04
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1a7c2d9e04"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_TYPE = sa.Enum("CUSTOMER", "PROVIDER", "ADMIN", name="usertype")


def upgrade() -> None:
    op.create_table(
        "fcm_devices",
        sa.Column("token_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token", sa.String(512), nullable=False),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("browser", sa.String(64), nullable=True),
        sa.Column("platform", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "INACTIVE", "INVALID", name="devicestatus"),
            nullable=False,
        ),
        sa.Column("registered_at", sa.DateTime(), nullable=True),
        sa.Column("last_validated", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("token"),
    )
    op.create_index("ix_fcm_devices_device_id", "fcm_devices", ["device_id"])

    op.create_table(
        "fcm_user_subscriptions",
        sa.Column("subscription_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_type", USER_TYPE, nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("active_session_id", sa.String(128), nullable=True),
        sa.Column("last_active", sa.DateTime(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "INACTIVE", name="subscriptionstatus"),
            nullable=False,
        ),
        sa.Column("subscribed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["token_id"],
            ["fcm_devices.token_id"],
            name="fk_fcm_user_subscriptions_token_id_fcm_devices",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("token_id", "user_id", "user_type", name="uq_token_user_role"),
    )
    op.create_index("ix_fcm_user_subscriptions_user_id", "fcm_user_subscriptions", ["user_id"])
    op.create_index("ix_fcm_user_subscriptions_user_type", "fcm_user_subscriptions", ["user_type"])

    op.create_table(
        "fcm_cleanup_logs",
        sa.Column("log_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token_prefix", sa.String(32), nullable=False),
        sa.Column("device_id", sa.String(128), nullable=True),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("cleaned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_type", USER_TYPE, nullable=False),
        sa.Column(
            "type",
            sa.Enum("MESSAGE", "BOOKING", "OFFER", "PAYMENT", "SYSTEM", name="notificationtype"),
            nullable=False,
        ),
        sa.Column("category", sa.Enum("BUSINESS", "CHAT", name="notificationcategory"), nullable=False),
        sa.Column(
            "priority",
            sa.Enum("LOW", "MEDIUM", "HIGH", "URGENT", name="notificationpriority"),
            nullable=False,
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("message", sa.String(255), nullable=False),
        sa.Column("related_id", sa.String(128), nullable=True),
        sa.Column("related_type", sa.String(32), nullable=True),
        sa.Column("sender_id", sa.String(128), nullable=True),
        sa.Column("sender_name", sa.String(255), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_table("fcm_cleanup_logs")

    op.drop_index("ix_fcm_user_subscriptions_user_type", table_name="fcm_user_subscriptions")
    op.drop_index("ix_fcm_user_subscriptions_user_id", table_name="fcm_user_subscriptions")
    op.drop_table("fcm_user_subscriptions")

    op.drop_index("ix_fcm_devices_device_id", table_name="fcm_devices")
    op.drop_table("fcm_devices")
