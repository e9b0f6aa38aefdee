"""Pydantic schemas and cursor utilities for pp_account API."""

import base64
import json

from pydantic import BaseModel, Field

from src.pp_common.amounts import MAX_AMOUNT, amount_to_display

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
# Request schemas
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="Amount to deposit, smallest units")


class WithdrawRequest(BaseModel):
    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="Amount to withdraw, smallest units")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: str
    balance_display: str

    @classmethod
    def from_amount(cls, user_id: str, balance: int) -> "BalanceResponse":
        # Amounts exceed 2**53; serialized as strings so JS clients keep precision
        return cls(
            user_id=user_id,
            balance=str(balance),
            balance_display=amount_to_display(balance),
        )


class TransferResponse(BaseModel):
    balance: str
    balance_display: str
    amount: str
    amount_display: str
    ledger_entry_id: int

    @classmethod
    def from_result(cls, balance: int, amount: int, entry_id: int) -> "TransferResponse":
        return cls(
            balance=str(balance),
            balance_display=amount_to_display(balance),
            amount=str(amount),
            amount_display=amount_to_display(amount),
            ledger_entry_id=entry_id,
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: str
    amount_display: str
    balance_after: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
