"""006: create ledger_entries table

Revision ID: 006
Revises: 005
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            entry_type      VARCHAR(32)     NOT NULL,
            amount          NUMERIC(20, 8)  NOT NULL,
            balance_after   NUMERIC(20, 8)  NOT NULL,
            reference_type  VARCHAR(32),
            reference_id    VARCHAR(64),
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_entry_type CHECK (entry_type IN (
                'TRADE_BUY', 'TRADE_SELL', 'SETTLEMENT_PAYOUT',
                'SIGNUP_GRANT', 'ADMIN_GRANT'
            )),
            CONSTRAINT ck_ledger_balance_after_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_user_id ON ledger_entries (user_id, id DESC);")
    op.execute("CREATE INDEX idx_ledger_reference ON ledger_entries (reference_type, reference_id);")
    op.execute("COMMENT ON TABLE ledger_entries IS 'Append-only balance journal; SUM(amount) = balance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
