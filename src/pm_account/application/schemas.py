"""Pydantic schemas and cursor utilities for pm_account API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel

from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.amounts import dollars_to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str

    @classmethod
    def from_domain(cls, account: Account) -> "BalanceResponse":
        return cls(
            user_id=account.user_id,
            balance=account.balance,
            balance_display=dollars_to_display(account.balance),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: Decimal
    amount_display: str
    balance_after: Decimal
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount=e.amount,
            amount_display=dollars_to_display(e.amount),
            balance_after=e.balance_after,
            balance_after_display=dollars_to_display(e.balance_after),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class LeaderboardItem(BaseModel):
    rank: int
    user_id: str
    balance: Decimal
    balance_display: str


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardItem]
