"""006: record where each order's entry and exit price came from

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Existing rows were priced by the oracle path; no UPDATE needed (fast default)
    op.add_column(
        "betting_orders",
        sa.Column(
            "entry_price_source",
            sa.String(10),
            nullable=False,
            server_default=sa.text("'live'"),
        ),
    )
    op.add_column(
        "betting_orders",
        sa.Column("exit_price_source", sa.String(10), nullable=True),
    )
    op.execute("""
        ALTER TABLE betting_orders
        ADD CONSTRAINT ck_betting_orders_entry_source
            CHECK (entry_price_source IN ('live', 'cache', 'hint', 'default')),
        ADD CONSTRAINT ck_betting_orders_exit_source
            CHECK (exit_price_source IS NULL OR exit_price_source IN ('live', 'cache', 'flat'));
    """)


def downgrade() -> None:
    op.execute("""
        ALTER TABLE betting_orders
        DROP CONSTRAINT IF EXISTS ck_betting_orders_exit_source,
        DROP CONSTRAINT IF EXISTS ck_betting_orders_entry_source;
    """)
    op.drop_column("betting_orders", "exit_price_source")
    op.drop_column("betting_orders", "entry_price_source")
