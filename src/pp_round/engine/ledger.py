"""RoundLedger: stateful orchestrator for betting and round resolution.

One ledger per process owns the single write critical section: place_bet,
resolve_round and open_initial_round all run under one asyncio.Lock, inside a
savepoint, with the current round row selected FOR UPDATE. A failure anywhere
inside a write rolls the savepoint back, so partial bets or partial
settlements are never observable. Reads do not go through the ledger.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_account.domain.repository import AccountRepositoryProtocol
from src.pp_account.infrastructure.persistence import AccountRepository
from src.pp_common.amounts import validate_price
from src.pp_common.datetime_utils import seconds_until, utc_now
from src.pp_common.enums import LedgerEntryType
from src.pp_common.errors import AlreadyResolvedError, NotYetEndedError, RoundNotFoundError
from src.pp_round.domain.models import Bet, Round
from src.pp_round.domain.repository import RoundRepositoryProtocol
from src.pp_round.domain.rules import check_min_stake, check_not_already_bet, check_round_open
from src.pp_round.infrastructure.persistence import RoundRepository
from src.pp_settlement.domain.models import SettlementPlan
from src.pp_settlement.domain.settlement import settle_round
from src.pp_settlement.infrastructure.transfer import (
    AccountPayoutTransfer,
    PayoutTransferProtocol,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    closed_round_id: int
    plan: SettlementPlan
    next_round: Round

    @property
    def participants_processed(self) -> int:
        return self.plan.participants


class RoundLedger:
    def __init__(
        self,
        repo: RoundRepositoryProtocol | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        transfer: PayoutTransferProtocol | None = None,
        min_bet: int | None = None,
        round_duration_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: RoundRepositoryProtocol = repo or RoundRepository()
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._transfer: PayoutTransferProtocol = transfer or AccountPayoutTransfer(self._accounts)
        self._min_bet = settings.MIN_BET if min_bet is None else min_bet
        duration = (
            settings.ROUND_DURATION_SECONDS
            if round_duration_seconds is None
            else round_duration_seconds
        )
        self._round_duration = timedelta(seconds=duration)
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def min_bet(self) -> int:
        return self._min_bet

    @property
    def round_duration(self) -> timedelta:
        return self._round_duration

    async def open_initial_round(self, start_price: int, db: AsyncSession) -> Round:
        """Create round 1 if no round exists yet; otherwise return the open round."""
        validate_price(start_price)
        async with self._lock:
            async with db.begin_nested():
                current = await self._repo.get_current_round(db, for_update=True)
                if current is not None:
                    return current
                rnd = await self._open_round(1, start_price, db, self._clock())
                logger.info("Round 1 opened: start_price=%d ends=%s", start_price, rnd.end_time)
                return rnd

    async def place_bet(
        self, user_id: str, direction: bool, amount: int, db: AsyncSession
    ) -> Bet:
        """Escrow the stake and record the bet against the open round."""
        async with self._lock:
            async with db.begin_nested():
                return await self._place_bet_inner(user_id, direction, amount, db)

    async def _place_bet_inner(
        self, user_id: str, direction: bool, amount: int, db: AsyncSession
    ) -> Bet:
        rnd = await self._repo.get_current_round(db, for_update=True)
        if rnd is None:
            raise RoundNotFoundError("current")

        check_round_open(rnd)
        check_min_stake(amount, self._min_bet)
        existing = await self._repo.get_bet(db, rnd.id, user_id)
        check_not_already_bet(existing, rnd.id, user_id)

        await self._accounts.debit(
            db, user_id, amount, LedgerEntryType.BET_STAKE, "ROUND", str(rnd.id)
        )
        bet = await self._repo.insert_bet(
            db,
            Bet(
                round_id=rnd.id,
                user_id=user_id,
                amount=amount,
                direction=direction,
                placed_at=self._clock(),
            ),
        )
        await self._repo.add_to_pool(db, rnd.id, direction, amount)

        logger.info(
            "Bet placed: round=%d user=%s side=%s amount=%d",
            rnd.id, user_id, bet.side.value, amount,
        )
        return bet

    async def resolve_round(
        self,
        end_price: int,
        next_start_price: int,
        db: AsyncSession,
        round_id: int | None = None,
    ) -> ResolutionResult:
        """Settle the current round and open the next one, as one unit.

        round_id is the round the caller means to close. Naming a round that
        is already resolved raises AlreadyResolvedError, which is how a
        repeated resolve is recognised. Without round_id the call targets
        whatever round is current, so a repeat lands on the freshly opened
        round and fails with NotYetEndedError instead. The HTTP API always
        passes round_id.
        """
        validate_price(end_price)
        validate_price(next_start_price)
        async with self._lock:
            async with db.begin_nested():
                return await self._resolve_inner(end_price, next_start_price, db, round_id)

    async def _resolve_inner(
        self,
        end_price: int,
        next_start_price: int,
        db: AsyncSession,
        round_id: int | None,
    ) -> ResolutionResult:
        rnd = await self._repo.get_current_round(db, for_update=True)
        if rnd is None:
            raise RoundNotFoundError("current")

        if round_id is not None and round_id != rnd.id:
            target = await self._repo.get_round(db, round_id)
            if target is not None and target.resolved:
                raise AlreadyResolvedError(round_id)
            raise RoundNotFoundError(round_id)
        if rnd.resolved:
            raise AlreadyResolvedError(rnd.id)

        now = self._clock()
        if not rnd.has_ended(now):
            logger.info(
                "Resolve of round %d refused: %ds left", rnd.id, seconds_until(rnd.end_time, now)
            )
            raise NotYetEndedError(rnd.id, rnd.end_time.isoformat())

        plan = await settle_round(rnd, end_price, now, self._repo, self._transfer, db)
        next_round = await self._open_round(rnd.id + 1, next_start_price, db, now)

        logger.info(
            "Round %d resolved (%d participants processed); round %d opened at %d",
            rnd.id, plan.participants, next_round.id, next_start_price,
        )
        return ResolutionResult(closed_round_id=rnd.id, plan=plan, next_round=next_round)

    async def _open_round(
        self, round_id: int, start_price: int, db: AsyncSession, now: datetime
    ) -> Round:
        return await self._repo.create_round(
            db, round_id, start_price, now, now + self._round_duration
        )
