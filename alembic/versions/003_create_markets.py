"""003: create markets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id            VARCHAR(64)     PRIMARY KEY,
            question      TEXT            NOT NULL,
            yes_price     NUMERIC(20, 8)  NOT NULL DEFAULT 0.5,
            no_price      NUMERIC(20, 8)  NOT NULL DEFAULT 0.5,
            pool_k        NUMERIC(20, 8)  NOT NULL DEFAULT 10000,
            total_volume  NUMERIC(20, 8)  NOT NULL DEFAULT 0,
            is_locked     BOOLEAN         NOT NULL DEFAULT FALSE,
            outcome       VARCHAR(3)      DEFAULT NULL,
            resolved_at   TIMESTAMPTZ     DEFAULT NULL,
            created_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_yes_price     CHECK (yes_price BETWEEN 0.01 AND 0.99),
            CONSTRAINT ck_markets_no_price      CHECK (no_price BETWEEN 0.01 AND 0.99),
            CONSTRAINT ck_markets_pool_k        CHECK (pool_k > 0),
            CONSTRAINT ck_markets_volume_gte_0  CHECK (total_volume >= 0),
            CONSTRAINT ck_markets_outcome       CHECK (outcome IS NULL OR outcome IN ('yes', 'no')),
            CONSTRAINT ck_markets_resolved_pair CHECK ((outcome IS NULL) = (resolved_at IS NULL))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("CREATE INDEX idx_markets_listing ON markets ((outcome IS NOT NULL), created_at DESC);")
    op.execute("COMMENT ON TABLE markets IS 'Binary markets; YES and NO pools priced independently';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
