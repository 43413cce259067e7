"""Create the ledger schema, the accounts table and its stored functions."""

from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_ledger_accounts"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS ledger")

    op.create_table(
        "accounts",
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("balance", sa.Numeric(), nullable=False, server_default="0"),
        sa.Column(
            "history",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("chat_id", name="pk_ledger_accounts"),
        sa.CheckConstraint(
            "jsonb_typeof(history) = 'array'", name="ck_ledger_accounts_history_array"
        ),
        schema="ledger",
    )

    op.execute(_load_sql("fn_apply_delta.sql"))
    op.execute(_load_sql("fn_trim_history.sql"))
    op.execute(_load_sql("fn_reset_balance.sql"))


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS ledger.fn_reset_balance(bigint, numeric)")
    op.execute("DROP FUNCTION IF EXISTS ledger.fn_trim_history(bigint, integer)")
    op.execute("DROP FUNCTION IF EXISTS ledger.fn_apply_delta(bigint, numeric, bigint)")
    op.drop_table("accounts", schema="ledger")
    op.execute("DROP SCHEMA IF EXISTS ledger")


def _load_sql(filename: str) -> str:
    base_path = Path(__file__).resolve().parents[2]
    sql_path = base_path / "functions" / filename
    return sql_path.read_text(encoding="utf-8")
