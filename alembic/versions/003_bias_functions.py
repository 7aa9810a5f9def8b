"""Add get_current_bias() and set_bias_state() server functions.

set_bias_state deactivates the day's active rows and inserts the new one in a
single transaction.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "CREATE OR REPLACE FUNCTION get_current_bias(p_day_key date, p_user_id text) "
        "RETURNS SETOF bias_state "
        "LANGUAGE sql STABLE AS $$ "
        "  SELECT * FROM bias_state "
        "  WHERE day_key = p_day_key AND selected_by = p_user_id AND active "
        "  ORDER BY selected_at DESC "
        "  LIMIT 1 "
        "$$"
    )
    op.execute(
        "CREATE OR REPLACE FUNCTION set_bias_state("
        "  p_day_key date, p_user_id text, p_bias text, "
        "  p_market_state text, p_confidence text, p_tags jsonb"
        ") "
        "RETURNS SETOF bias_state "
        "LANGUAGE plpgsql AS $$ "
        "BEGIN "
        "  UPDATE bias_state SET active = false "
        "  WHERE day_key = p_day_key AND selected_by = p_user_id AND active; "
        "  RETURN QUERY "
        "  INSERT INTO bias_state (day_key, bias, market_state, confidence, tags, selected_by, active) "
        "  VALUES (p_day_key, p_bias, p_market_state, p_confidence, p_tags, p_user_id, true) "
        "  RETURNING *; "
        "END "
        "$$"
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS set_bias_state(date, text, text, text, text, jsonb)")
    op.execute("DROP FUNCTION IF EXISTS get_current_bias(date, text)")
