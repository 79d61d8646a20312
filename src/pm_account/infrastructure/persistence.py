"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING
and write one ledger_entries row in the same transaction.
A debit that returns 0 rows means the balance was insufficient.

Transaction ownership: the CALLER (TradeExecutor, SettlementService or an
application service) commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import AccountNotFoundError, InsufficientBalanceError, InternalError

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_ACCOUNT_COLUMNS = "user_id, balance, version, created_at, updated_at"

_GET_ACCOUNT_SQL = text(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE user_id = :user_id")

_LOCK_ACCOUNT_SQL = text(
    f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE user_id = :user_id FOR UPDATE"
)

_INSERT_ACCOUNT_SQL = text(f"""
    INSERT INTO accounts (user_id, balance)
    VALUES (:user_id, :balance)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_TOP_BALANCES_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    ORDER BY balance DESC, user_id
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries (append-only)
# ---------------------------------------------------------------------------

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=Decimal(row.balance),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=Decimal(row.amount),  # type: ignore[attr-defined]
        balance_after=Decimal(row.balance_after),  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def lock_account_for_update(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_LOCK_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def ensure_account(
        self, db: AsyncSession, user_id: str, starting_balance: Decimal
    ) -> tuple[Account, bool]:
        """Return (account, created). A new account gets a SIGNUP_GRANT ledger row."""
        result = await db.execute(
            _INSERT_ACCOUNT_SQL, {"user_id": user_id, "balance": starting_balance}
        )
        row = result.fetchone()
        if row is None:
            existing = await self.get_account_by_user_id(db, user_id)
            if existing is None:
                raise InternalError(f"Account upsert lost for user {user_id}")
            return existing, False
        account = _row_to_account(row)
        await self._write_ledger(
            db,
            user_id=user_id,
            entry_type=LedgerEntryType.SIGNUP_GRANT,
            amount=starting_balance,
            balance_after=account.balance,
            ref_type="ACCOUNT",
            ref_id=user_id,
            description="Starting balance",
        )
        return account, True

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            current = await self.get_account_by_user_id(db, user_id)
            if current is None:
                raise AccountNotFoundError(user_id)
            raise InsufficientBalanceError(amount, current.balance)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db,
            user_id=user_id,
            entry_type=entry_type,
            amount=-amount,
            balance_after=account.balance,
            ref_type=ref_type,
            ref_id=ref_id,
            description=description,
        )
        return account, entry

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise AccountNotFoundError(user_id)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db,
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=account.balance,
            ref_type=ref_type,
            ref_id=ref_id,
            description=description,
        )
        return account, entry

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "limit": limit,
                "entry_type": entry_type,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def list_top_balances(self, db: AsyncSession, limit: int) -> list[Account]:
        result = await db.execute(_TOP_BALANCES_SQL, {"limit": limit})
        return [_row_to_account(row) for row in result.fetchall()]

    async def _write_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        entry_type: str,
        amount: Decimal,
        balance_after: Decimal,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows — this should never happen")
        return _row_to_ledger(row)
