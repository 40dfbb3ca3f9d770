"""001: create common trigger functions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # users / accounts
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # betting_orders: completed and cancelled rows are immutable
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_freeze_terminal_order()
        RETURNS TRIGGER AS $$
        BEGIN
            IF OLD.status <> 'active' THEN
                RAISE EXCEPTION 'betting order % is % and cannot be modified', OLD.id, OLD.status
                    USING ERRCODE = 'check_violation';
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_freeze_terminal_order();")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
