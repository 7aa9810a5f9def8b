"""Initial schema: bias_state, hypotheses, trades, user_settings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- bias_state ---
    op.create_table(
        "bias_state",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("day_key", sa.Date, nullable=False),
        sa.Column(
            "bias",
            sa.String(10),
            sa.CheckConstraint("bias IN ('OOB_LONG', 'OOB_SHORT', 'MR_LONG', 'MR_SHORT', 'NONE')"),
            nullable=False,
        ),
        sa.Column(
            "market_state",
            sa.String(16),
            sa.CheckConstraint("market_state IN ('OUT_OF_BALANCE', 'IN_BALANCE')"),
        ),
        sa.Column(
            "confidence",
            sa.String(6),
            sa.CheckConstraint("confidence IN ('LOW', 'MEDIUM', 'HIGH')"),
        ),
        sa.Column("tags", JSONB),
        sa.Column(
            "selected_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
        ),
        sa.Column("selected_by", sa.String(36)),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )
    op.create_index("idx_bias_state_day_user", "bias_state", ["day_key", "selected_by"])
    op.create_index("idx_bias_state_active", "bias_state", ["active"])

    # --- hypotheses ---
    op.create_table(
        "hypotheses",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column(
            "status",
            sa.String(10),
            sa.CheckConstraint("status IN ('active', 'paused', 'completed')"),
            server_default="active",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("idx_hypotheses_user", "hypotheses", ["user_id"])

    # --- trades ---
    op.create_table(
        "trades",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("asset", sa.String(20), nullable=False),
        sa.Column(
            "direction",
            sa.String(5),
            sa.CheckConstraint("direction IN ('long', 'short')"),
            nullable=False,
        ),
        sa.Column("model", sa.String(40), nullable=False),
        sa.Column("entry_price", sa.Numeric(20, 8), nullable=False),
        sa.Column("stop_loss", sa.Numeric(20, 8), nullable=False),
        sa.Column("exit_price", sa.Numeric(20, 8)),
        sa.Column("entry_time", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("exit_time", sa.DateTime(timezone=True)),
        sa.Column("duration_minutes", sa.Integer),
        sa.Column("risk_tier", sa.String(1), nullable=False),
        sa.Column("risk_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("pnl", sa.Numeric(14, 2)),
        sa.Column("r_multiple", sa.Numeric(10, 3)),
        sa.Column(
            "status",
            sa.String(10),
            sa.CheckConstraint("status IN ('open', 'closed')"),
            server_default="open",
        ),
        sa.Column("session", sa.String(40)),
        sa.Column("trading_session", sa.String(40)),
        sa.Column("locations", sa.ARRAY(sa.String)),
        sa.Column("aggression", sa.ARRAY(sa.String)),
        sa.Column("scenarios", sa.ARRAY(sa.String)),
        sa.Column("externals", sa.ARRAY(sa.String)),
        sa.Column("mistake_tags", sa.ARRAY(sa.String)),
        sa.Column("emotions", JSONB),
        sa.Column("checklist", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("checklist_complete", sa.Boolean, server_default=sa.text("false")),
        sa.Column("bias_snapshot", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("screenshot_url", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("is_experimental", sa.Boolean, server_default=sa.text("false")),
        sa.Column("hypothesis_id", sa.String(36), sa.ForeignKey("hypotheses.id")),
        sa.Column("override_reason", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("idx_trades_user", "trades", ["user_id"])
    op.create_index("idx_trades_status", "trades", ["status"])
    op.create_index("idx_trades_created_at", "trades", [sa.text("created_at DESC")])
    op.create_index("idx_trades_hypothesis", "trades", ["hypothesis_id"])

    # --- user_settings ---
    op.create_table(
        "user_settings",
        sa.Column(
            "id",
            sa.String(36),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()::text"),
        ),
        sa.Column("user_id", sa.String(36), unique=True, nullable=False),
        sa.Column("last_model", sa.String(40)),
        sa.Column("last_locations", sa.ARRAY(sa.String)),
        sa.Column("last_aggression", sa.ARRAY(sa.String)),
        sa.Column("last_risk_tier", sa.String(1)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )


def downgrade() -> None:
    op.drop_table("user_settings")
    op.drop_table("trades")
    op.drop_table("hypotheses")
    op.drop_table("bias_state")
