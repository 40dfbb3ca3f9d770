"""005: create betting_orders table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE betting_orders (
            id              VARCHAR(26)     PRIMARY KEY,
            order_no        VARCHAR(32)     NOT NULL,
            user_id         VARCHAR(64)     NOT NULL,
            asset           VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            direction       VARCHAR(10)     NOT NULL,
            duration        INT             NOT NULL,
            entry_price     NUMERIC(20, 8)  NOT NULL,
            exit_price      NUMERIC(20, 8),
            profit_loss     BIGINT,
            status          VARCHAR(20)     NOT NULL DEFAULT 'active',
            result          VARCHAR(10),
            cancel_reason   VARCHAR(200),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            expires_at      TIMESTAMPTZ     NOT NULL,
            settled_at      TIMESTAMPTZ,
            CONSTRAINT uq_betting_orders_order_no   UNIQUE (order_no),
            CONSTRAINT ck_betting_orders_amount     CHECK (amount > 0),
            CONSTRAINT ck_betting_orders_direction  CHECK (direction IN ('Buy Up', 'Buy Down')),
            CONSTRAINT ck_betting_orders_duration   CHECK (duration IN (30, 60, 120, 180, 240)),
            CONSTRAINT ck_betting_orders_entry      CHECK (entry_price > 0),
            CONSTRAINT ck_betting_orders_status     CHECK (status IN ('active', 'completed', 'cancelled')),
            CONSTRAINT ck_betting_orders_result     CHECK (result IS NULL OR result IN ('win', 'loss', 'draw')),
            CONSTRAINT ck_betting_orders_completed  CHECK (
                (status = 'completed') = (result IS NOT NULL AND exit_price IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_betting_orders_user ON betting_orders (user_id, id DESC);")
    op.execute("CREATE INDEX idx_betting_orders_status ON betting_orders (status, id DESC);")
    op.execute("""
        CREATE INDEX idx_betting_orders_due
        ON betting_orders (expires_at)
        WHERE status = 'active';
    """)
    op.execute("""
        CREATE TRIGGER trg_betting_orders_terminal
        BEFORE UPDATE ON betting_orders
        FOR EACH ROW EXECUTE FUNCTION fn_freeze_terminal_order();
    """)
    op.execute("COMMENT ON TABLE betting_orders IS 'Timed direction orders; amounts in cents, prices in USD';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS betting_orders CASCADE;")
