"""007: admin balance holds and the withdrawal request workflow

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_LEDGER_TYPES_V1 = (
    "'DEPOSIT', 'WITHDRAW', 'ORDER_FREEZE', 'ORDER_CANCEL_REFUND', 'SETTLEMENT_PNL'"
)
_LEDGER_TYPES_V2 = (
    "'DEPOSIT', 'WITHDRAW', 'WITHDRAW_REJECT_REFUND', 'ADMIN_FREEZE', 'ADMIN_UNFREEZE', "
    "'ORDER_FREEZE', 'ORDER_CANCEL_REFUND', 'SETTLEMENT_PNL'"
)


def upgrade() -> None:
    # 1. held_balance: the part of frozen_balance placed there by an admin freeze
    op.add_column(
        "accounts",
        sa.Column("held_balance", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
    )
    op.execute("""
        ALTER TABLE accounts
        ADD CONSTRAINT ck_accounts_held_range
            CHECK (held_balance >= 0 AND held_balance <= frozen_balance);
    """)

    # 2. New ledger entry types
    op.execute("ALTER TABLE ledger_entries DROP CONSTRAINT ck_ledger_entry_type;")
    op.execute(
        "ALTER TABLE ledger_entries ADD CONSTRAINT ck_ledger_entry_type "
        f"CHECK (entry_type IN ({_LEDGER_TYPES_V2}));"
    )

    # 3. Withdrawal requests: funds leave available on request, refunded on rejection
    op.execute("""
        CREATE TABLE withdrawal_requests (
            id              VARCHAR(26)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            amount          BIGINT          NOT NULL,
            status          VARCHAR(10)     NOT NULL DEFAULT 'pending',
            review_note     VARCHAR(200),
            reviewed_by     VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            reviewed_at     TIMESTAMPTZ,
            CONSTRAINT ck_withdrawal_requests_amount CHECK (amount > 0),
            CONSTRAINT ck_withdrawal_requests_status CHECK (
                status IN ('pending', 'approved', 'rejected')
            ),
            CONSTRAINT ck_withdrawal_requests_reviewed CHECK (
                (status = 'pending') = (reviewed_at IS NULL)
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_withdrawal_requests_user ON withdrawal_requests (user_id, id DESC);"
    )
    op.execute(
        "CREATE INDEX idx_withdrawal_requests_status ON withdrawal_requests (status, id DESC);"
    )
    op.execute(
        "COMMENT ON TABLE withdrawal_requests IS 'Customer withdrawals awaiting admin review; cents';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS withdrawal_requests CASCADE;")
    op.execute("ALTER TABLE ledger_entries DROP CONSTRAINT ck_ledger_entry_type;")
    op.execute(
        "ALTER TABLE ledger_entries ADD CONSTRAINT ck_ledger_entry_type "
        f"CHECK (entry_type IN ({_LEDGER_TYPES_V1}));"
    )
    op.execute("ALTER TABLE accounts DROP CONSTRAINT IF EXISTS ck_accounts_held_range;")
    op.drop_column("accounts", "held_balance")
