"""Add v_current_bias: the active bias row per user and day.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "CREATE OR REPLACE VIEW v_current_bias AS "
        "SELECT DISTINCT ON (day_key, selected_by) "
        "  id, day_key, bias, market_state, confidence, tags, selected_at, selected_by "
        "FROM bias_state "
        "WHERE active "
        "ORDER BY day_key, selected_by, selected_at DESC"
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS v_current_bias")
