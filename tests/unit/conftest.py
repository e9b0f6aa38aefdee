"""In-memory collaborators for ledger and settlement tests.

FakeSession.begin_nested() snapshots every registered store and restores it
when the block raises, mirroring a rolled-back savepoint.
"""

import copy
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from src.pp_account.domain.models import Account, LedgerEntry
from src.pp_common.enums import LedgerEntryType, SettlementKind
from src.pp_common.errors import AccountNotFoundError, InsufficientBalanceError
from src.pp_round.domain.models import Bet, Round, UserRound
from src.pp_round.engine.ledger import RoundLedger
from src.pp_settlement.infrastructure.transfer import AccountPayoutTransfer

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
ROUND_SECONDS = 300
HOUSE = "HOUSE"


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class FakeAccounts:
    def __init__(self) -> None:
        self.balances: dict[str, int] = {HOUSE: 0}
        self.entries: list[LedgerEntry] = []
        self.fail_credit_for: set[str] = set()

    def snapshot(self) -> object:
        return copy.deepcopy((self.balances, self.entries))

    def restore(self, state: object) -> None:
        self.balances, self.entries = state  # type: ignore[misc]

    def _account(self, user_id: str) -> Account:
        return Account(
            id=f"acc-{user_id}",
            user_id=user_id,
            balance=self.balances[user_id],
            version=1,
            created_at=T0,
            updated_at=T0,
        )

    def _write(self, user_id: str, entry_type: str, amount: int, ref_id: str | None) -> LedgerEntry:
        entry = LedgerEntry(
            id=len(self.entries) + 1,
            user_id=user_id,
            entry_type=LedgerEntryType(entry_type).value,
            amount=amount,
            balance_after=self.balances[user_id],
            reference_id=ref_id,
            created_at=T0,
        )
        self.entries.append(entry)
        return entry

    async def get_account_by_user_id(self, db: object, user_id: str) -> Account | None:
        return self._account(user_id) if user_id in self.balances else None

    async def deposit(self, db: object, user_id: str, amount: int) -> tuple[Account, LedgerEntry]:
        self.balances[user_id] = self.balances.get(user_id, 0) + amount
        return self._account(user_id), self._write(user_id, LedgerEntryType.DEPOSIT, amount, None)

    async def withdraw(self, db: object, user_id: str, amount: int) -> tuple[Account, LedgerEntry]:
        return await self.debit(db, user_id, amount, LedgerEntryType.WITHDRAW, "WITHDRAW", "")

    async def debit(
        self, db: object, user_id: str, amount: int, entry_type: str, ref_type: str, ref_id: str
    ) -> tuple[Account, LedgerEntry]:
        if user_id not in self.balances:
            raise AccountNotFoundError(user_id)
        if self.balances[user_id] < amount:
            raise InsufficientBalanceError(amount, self.balances[user_id])
        self.balances[user_id] -= amount
        return self._account(user_id), self._write(user_id, entry_type, -amount, ref_id)

    async def credit(
        self, db: object, user_id: str, amount: int, entry_type: str, ref_type: str, ref_id: str
    ) -> tuple[Account, LedgerEntry] | None:
        if user_id not in self.balances or user_id in self.fail_credit_for:
            return None
        self.balances[user_id] += amount
        return self._account(user_id), self._write(user_id, entry_type, amount, ref_id)

    async def list_ledger_entries(
        self, db: object, user_id: str, cursor_id: int | None, limit: int, entry_type: str | None
    ) -> list[LedgerEntry]:
        rows = [
            e for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return rows[:limit]


class FakeRounds:
    def __init__(self) -> None:
        self.rounds: dict[int, Round] = {}
        self.bets: list[Bet] = []

    def snapshot(self) -> object:
        return copy.deepcopy((self.rounds, self.bets))

    def restore(self, state: object) -> None:
        self.rounds, self.bets = state  # type: ignore[misc]

    async def get_current_round(self, db: object, for_update: bool = False) -> Round | None:
        if not self.rounds:
            return None
        return replace(self.rounds[max(self.rounds)])

    async def get_round(self, db: object, round_id: int) -> Round | None:
        rnd = self.rounds.get(round_id)
        return replace(rnd) if rnd else None

    async def create_round(
        self, db: object, round_id: int, start_price: int, start_time: datetime, end_time: datetime
    ) -> Round:
        assert round_id not in self.rounds
        assert all(r.resolved for r in self.rounds.values()), "second open round"
        self.rounds[round_id] = Round(
            id=round_id, start_time=start_time, end_time=end_time, start_price=start_price
        )
        return replace(self.rounds[round_id])

    async def get_bet(self, db: object, round_id: int, user_id: str) -> Bet | None:
        for b in self.bets:
            if b.round_id == round_id and b.user_id == user_id:
                return replace(b)
        return None

    async def insert_bet(self, db: object, bet: Bet) -> Bet:
        stored = replace(bet, id=len(self.bets) + 1)
        self.bets.append(stored)
        return replace(stored)

    async def add_to_pool(self, db: object, round_id: int, direction: bool, amount: int) -> None:
        rnd = self.rounds[round_id]
        if direction:
            rnd.up_pool += amount
        else:
            rnd.down_pool += amount

    async def list_round_bets(self, db: object, round_id: int) -> list[Bet]:
        return [replace(b) for b in self.bets if b.round_id == round_id]

    async def mark_bets_claimed(
        self,
        db: object,
        round_id: int,
        payouts: Mapping[str, tuple[int, SettlementKind]],
    ) -> None:
        for b in self.bets:
            if b.round_id == round_id and b.user_id in payouts:
                b.claimed = True
                b.payout, b.outcome = payouts[b.user_id]

    async def mark_round_resolved(
        self,
        db: object,
        round_id: int,
        end_price: int,
        up_won: bool,
        retained_remainder: int,
        resolved_at: datetime,
    ) -> None:
        rnd = self.rounds[round_id]
        rnd.end_price = end_price
        rnd.up_won = up_won
        rnd.retained_remainder = retained_remainder
        rnd.resolved = True
        rnd.resolved_at = resolved_at

    async def list_user_rounds(self, db: object, user_id: str) -> list[UserRound]:
        return [
            UserRound(round=replace(self.rounds[b.round_id]), bet=replace(b))
            for b in self.bets
            if b.user_id == user_id
        ]


class FakeSession:
    def __init__(self, *stores: FakeAccounts | FakeRounds) -> None:
        self._stores = stores
        self.commits = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def begin_nested(self) -> AsyncIterator[None]:
        saved = [s.snapshot() for s in self._stores]
        try:
            yield
        except BaseException:
            for store, state in zip(self._stores, saved):
                store.restore(state)
            raise

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accounts() -> FakeAccounts:
    return FakeAccounts()


@pytest.fixture
def rounds() -> FakeRounds:
    return FakeRounds()


@pytest.fixture
def db(accounts: FakeAccounts, rounds: FakeRounds) -> FakeSession:
    return FakeSession(accounts, rounds)


@pytest.fixture
def ledger(rounds: FakeRounds, accounts: FakeAccounts, clock: FakeClock) -> RoundLedger:
    return RoundLedger(
        repo=rounds,
        accounts=accounts,
        transfer=AccountPayoutTransfer(accounts, house_account_id=HOUSE),
        min_bet=1,
        round_duration_seconds=ROUND_SECONDS,
        clock=clock,
    )
