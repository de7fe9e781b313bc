"""add_sync_history_run_metrics

Revision ID: 8e4b61d5f0a3
Revises: 3c1f0a7d92b4
Create Date: 2026-10-05 16:42:11.208734

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8e4b61d5f0a3"
down_revision: Union[str, None] = "3c1f0a7d92b4"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Use batch operations for SQLite compatibility
    with op.batch_alter_table("sync_history", recreate="auto") as batch_op:
        batch_op.add_column(
            sa.Column(
                "records_failed", sa.Integer(), nullable=False, server_default="0"
            )
        )
        batch_op.add_column(
            sa.Column(
                "duration_seconds", sa.Integer(), nullable=False, server_default="0"
            )
        )


def downgrade() -> None:
    with op.batch_alter_table("sync_history", recreate="auto") as batch_op:
        batch_op.drop_column("duration_seconds")
        batch_op.drop_column("records_failed")
