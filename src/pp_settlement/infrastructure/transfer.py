"""Payout transfers: one credit per paid participant, inside the caller's savepoint.

A transfer that cannot be delivered raises TransferFailedError; RoundLedger
lets it escape the savepoint so every earlier transfer of the same resolution
is rolled back with it.
"""

import logging
from typing import Protocol

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_account.domain.repository import AccountRepositoryProtocol
from src.pp_account.infrastructure.persistence import AccountRepository
from src.pp_common.enums import LedgerEntryType, SettlementKind
from src.pp_common.errors import TransferFailedError
from src.pp_settlement.domain.models import Payout

logger = logging.getLogger(__name__)

_ENTRY_TYPE_BY_KIND = {
    SettlementKind.WIN: LedgerEntryType.SETTLEMENT_PAYOUT,
    SettlementKind.REFUND: LedgerEntryType.SETTLEMENT_REFUND,
}


class PayoutTransferProtocol(Protocol):
    async def transfer(self, db: AsyncSession, round_id: int, payout: Payout) -> None: ...

    async def retain_remainder(self, db: AsyncSession, round_id: int, amount: int) -> None: ...


class AccountPayoutTransfer:
    """Delivers payouts as account credits with a ledger entry each."""

    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        house_account_id: str | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._house = house_account_id or settings.HOUSE_ACCOUNT_ID

    async def _credit(
        self, db: AsyncSession, round_id: int, user_id: str, amount: int, entry_type: str
    ) -> None:
        try:
            result = await self._accounts.credit(
                db, user_id, amount, entry_type, "ROUND", str(round_id)
            )
        except DBAPIError as exc:
            raise TransferFailedError(round_id, user_id, str(exc.orig)) from exc
        if result is None:
            raise TransferFailedError(round_id, user_id, "account does not exist")

    async def transfer(self, db: AsyncSession, round_id: int, payout: Payout) -> None:
        if payout.amount <= 0:
            return
        await self._credit(
            db, round_id, payout.user_id, payout.amount, _ENTRY_TYPE_BY_KIND[payout.kind]
        )
        logger.debug(
            "Round %d: %s %s credited %d", round_id, payout.kind.value, payout.user_id, payout.amount
        )

    async def retain_remainder(self, db: AsyncSession, round_id: int, amount: int) -> None:
        if amount <= 0:
            return
        await self._credit(db, round_id, self._house, amount, LedgerEntryType.SETTLEMENT_REMAINDER)
