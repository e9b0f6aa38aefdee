"""Unit tests for AccountPayoutTransfer."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError

from src.pp_common.enums import LedgerEntryType, SettlementKind
from src.pp_common.errors import TransferFailedError
from src.pp_settlement.domain.models import Payout
from src.pp_settlement.infrastructure.transfer import AccountPayoutTransfer


def _transfer(accounts: AsyncMock) -> AccountPayoutTransfer:
    return AccountPayoutTransfer(accounts, house_account_id="HOUSE")


class TestTransfer:
    async def test_win_credited_as_payout(self) -> None:
        accounts = AsyncMock()
        accounts.credit.return_value = (MagicMock(), MagicMock())
        db = MagicMock()

        await _transfer(accounts).transfer(db, 9, Payout("bob", 10, False, 20, SettlementKind.WIN))

        accounts.credit.assert_awaited_once_with(
            db, "bob", 20, LedgerEntryType.SETTLEMENT_PAYOUT, "ROUND", "9"
        )

    async def test_refund_credited_as_refund(self) -> None:
        accounts = AsyncMock()
        accounts.credit.return_value = (MagicMock(), MagicMock())

        await _transfer(accounts).transfer(
            MagicMock(), 9, Payout("amy", 10, True, 10, SettlementKind.REFUND)
        )

        assert accounts.credit.await_args.args[3] == LedgerEntryType.SETTLEMENT_REFUND

    async def test_loss_issues_no_transfer(self) -> None:
        accounts = AsyncMock()
        await _transfer(accounts).transfer(
            MagicMock(), 9, Payout("amy", 10, True, 0, SettlementKind.LOSS)
        )
        accounts.credit.assert_not_awaited()

    async def test_missing_account_fails_transfer(self) -> None:
        accounts = AsyncMock()
        accounts.credit.return_value = None
        with pytest.raises(TransferFailedError) as exc_info:
            await _transfer(accounts).transfer(
                MagicMock(), 9, Payout("ghost", 10, True, 20, SettlementKind.WIN)
            )
        assert "ghost" in exc_info.value.message

    async def test_database_error_fails_transfer(self) -> None:
        accounts = AsyncMock()
        accounts.credit.side_effect = DBAPIError("UPDATE accounts", {}, Exception("deadlock"))
        with pytest.raises(TransferFailedError, match="deadlock"):
            await _transfer(accounts).transfer(
                MagicMock(), 9, Payout("bob", 10, True, 20, SettlementKind.WIN)
            )


class TestRetainRemainder:
    async def test_remainder_credited_to_house(self) -> None:
        accounts = AsyncMock()
        accounts.credit.return_value = (MagicMock(), MagicMock())
        db = MagicMock()

        await _transfer(accounts).retain_remainder(db, 9, 2)

        accounts.credit.assert_awaited_once_with(
            db, "HOUSE", 2, LedgerEntryType.SETTLEMENT_REMAINDER, "ROUND", "9"
        )

    async def test_zero_remainder_skipped(self) -> None:
        accounts = AsyncMock()
        await _transfer(accounts).retain_remainder(MagicMock(), 9, 0)
        accounts.credit.assert_not_awaited()
