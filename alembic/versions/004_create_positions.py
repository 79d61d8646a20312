"""004: create positions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE positions (
            user_id       VARCHAR(64)     NOT NULL,
            market_id     VARCHAR(64)     NOT NULL REFERENCES markets (id),
            outcome       VARCHAR(3)      NOT NULL,
            shares_owned  NUMERIC(20, 8)  NOT NULL DEFAULT 0,
            total_paid    NUMERIC(20, 8)  NOT NULL DEFAULT 0,
            created_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT pk_positions           PRIMARY KEY (user_id, market_id, outcome),
            CONSTRAINT ck_positions_outcome   CHECK (outcome IN ('yes', 'no')),
            CONSTRAINT ck_positions_shares    CHECK (shares_owned >= 0),
            CONSTRAINT ck_positions_paid      CHECK (total_paid >= 0),
            CONSTRAINT ck_positions_no_dangle CHECK (shares_owned > 0 OR total_paid = 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("CREATE INDEX idx_positions_market_outcome ON positions (market_id, outcome, user_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
