"""AccountApplicationService: thin composition layer.

Deposit and withdraw commit their own transaction (rollback on any error).
Other operations (get_balance, list_ledger) are read-only.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_account.application.schemas import (
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    TransferResponse,
    cursor_decode,
    cursor_encode,
)
from src.pp_account.domain.repository import AccountRepositoryProtocol
from src.pp_account.infrastructure.persistence import AccountRepository
from src.pp_common.amounts import amount_to_display


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account_by_user_id(db, user_id)
        # A wallet that never deposited simply has nothing to spend
        balance = account.balance if account is not None else 0
        return BalanceResponse.from_amount(user_id=user_id, balance=balance)

    async def deposit(self, db: AsyncSession, user_id: str, amount: int) -> TransferResponse:
        try:
            account, entry = await self._repo.deposit(db, user_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return TransferResponse.from_result(account.balance, amount, entry.id)

    async def withdraw(self, db: AsyncSession, user_id: str, amount: int) -> TransferResponse:
        try:
            account, entry = await self._repo.withdraw(db, user_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return TransferResponse.from_result(account.balance, amount, entry.id)

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                amount=str(e.amount),
                amount_display=amount_to_display(e.amount),
                balance_after=str(e.balance_after),
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
