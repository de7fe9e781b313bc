"""create_sync_registry_tables

Revision ID: 3c1f0a7d92b4
Revises:
Create Date: 2026-09-28 10:14:37.512093

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1f0a7d92b4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "remote_locations",
        sa.Column("location_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("location_name", sa.String(length=100), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=False),
        sa.Column("port", sa.Integer(), nullable=False, server_default="5432"),
        sa.Column("database_name", sa.String(length=100), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("last_sync_time", sa.DateTime(), nullable=True),
        sa.Column("last_sync_status", sa.String(length=50), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.PrimaryKeyConstraint("location_id"),
    )

    op.create_table(
        "sync_history",
        sa.Column("sync_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("sync_type", sa.String(length=50), nullable=True),
        sa.Column("records_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "records_updated", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "records_skipped", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("status", sa.String(length=50), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column(
            "completed_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.ForeignKeyConstraint(
            ["location_id"], ["remote_locations.location_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("sync_id"),
    )
    op.create_index(
        "idx_history_location_completed",
        "sync_history",
        ["location_id", "completed_at"],
    )

    op.create_table(
        "sync_settings",
        sa.Column("setting_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "auto_sync_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "sync_interval_minutes", sa.Integer(), nullable=False, server_default="15"
        ),
        sa.Column(
            "last_modified",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.PrimaryKeyConstraint("setting_id"),
    )


def downgrade() -> None:
    op.drop_table("sync_settings")
    op.drop_index("idx_history_location_completed", table_name="sync_history")
    op.drop_table("sync_history")
    op.drop_table("remote_locations")
