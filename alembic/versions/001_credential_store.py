"""credential store tables

Revision ID: 001_credential_store
Revises:
Create Date: 2026-10-19

Creates the read-only lookup tables used by the relay:
- devices: device_id -> shared HMAC secret
- notification_bots: bot_name -> bot token and chat destination
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_credential_store"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(50), nullable=False),
        sa.Column("device_secret", sa.String(128), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("device_id"),
    )
    op.create_index("ix_devices_device_id", "devices", ["device_id"])

    op.create_table(
        "notification_bots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bot_name", sa.String(100), nullable=False),
        sa.Column("bot_token", sa.String(255), nullable=False),
        sa.Column("chat_id", sa.String(100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("bot_name"),
    )
    op.create_index("ix_notification_bots_bot_name", "notification_bots", ["bot_name"])


def downgrade() -> None:
    op.drop_index("ix_notification_bots_bot_name", table_name="notification_bots")
    op.drop_table("notification_bots")
    op.drop_index("ix_devices_device_id", table_name="devices")
    op.drop_table("devices")
