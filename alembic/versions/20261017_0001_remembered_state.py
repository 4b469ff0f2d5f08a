"""Remembered counter state table.

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "remembered_state",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("target", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("last_value", sa.Float(), nullable=False),
        sa.Column("last_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("target", "name", name="uq_remembered_state_target_name"),
    )
    op.create_index("ix_remembered_state_target", "remembered_state", ["target"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_remembered_state_target", table_name="remembered_state")
    op.drop_table("remembered_state")
