"""005: create trades table

Revision ID: 005
Revises: 004
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            trade_id     VARCHAR(64)     PRIMARY KEY,
            market_id    VARCHAR(64)     NOT NULL REFERENCES markets (id),
            user_id      VARCHAR(64)     NOT NULL,
            outcome      VARCHAR(3)      NOT NULL,
            mode         VARCHAR(4)      NOT NULL,
            dollars      NUMERIC(20, 8)  NOT NULL,
            shares       NUMERIC(20, 8)  NOT NULL,
            price_after  NUMERIC(20, 8)  NOT NULL,
            executed_at  TIMESTAMPTZ     NOT NULL,
            created_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_outcome     CHECK (outcome IN ('yes', 'no')),
            CONSTRAINT ck_trades_mode        CHECK (mode IN ('buy', 'sell')),
            CONSTRAINT ck_trades_dollars     CHECK (dollars >= 0),
            CONSTRAINT ck_trades_shares      CHECK (shares > 0),
            CONSTRAINT ck_trades_price_after CHECK (price_after BETWEEN 0.01 AND 0.99)
        );
    """)
    op.execute("CREATE INDEX idx_trades_user ON trades (user_id, trade_id DESC);")
    op.execute("CREATE INDEX idx_trades_market_time ON trades (market_id, executed_at DESC);")
    op.execute("COMMENT ON TABLE trades IS 'Append-only AMM trade log';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
