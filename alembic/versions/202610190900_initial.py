"""initial budget schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    ]


def upgrade():
    op.create_table(
        "recurring_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("currency_code", sa.String(length=3), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(length=40), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("account", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("expiry_date", sa.Date()),
        *_timestamps(),
    )
    op.create_index(
        "ix_recurring_transactions_position", "recurring_transactions", ["position"]
    )

    op.create_table(
        "currency_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("currency_code", sa.String(length=3), nullable=False),
        sa.Column("rate_micros", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("currency_code", name="uq_currency_rate_code"),
        sa.CheckConstraint("rate_micros >= 0", name="ck_currency_rate_positive"),
    )

    op.create_table(
        "budget_dates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("total_cents", sa.Integer()),
        sa.Column("comment", sa.Text()),
        sa.Column("computed_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_budget_dates_position", "budget_dates", ["position"])

    op.create_table(
        "frequency_ranks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(length=40), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("frequency", name="uq_frequency_rank_label"),
    )


def downgrade():
    op.drop_table("frequency_ranks")
    op.drop_index("ix_budget_dates_position", table_name="budget_dates")
    op.drop_table("budget_dates")
    op.drop_table("currency_rates")
    op.drop_index(
        "ix_recurring_transactions_position", table_name="recurring_transactions"
    )
    op.drop_table("recurring_transactions")
