# src/pp_round/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.enums import SettlementKind
from src.pp_round.domain.models import Bet, Round, UserRound


class RoundRepositoryProtocol(Protocol):
    async def get_current_round(
        self, db: AsyncSession, for_update: bool = False
    ) -> Round | None: ...

    async def get_round(self, db: AsyncSession, round_id: int) -> Round | None: ...

    async def create_round(
        self,
        db: AsyncSession,
        round_id: int,
        start_price: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Round: ...

    async def get_bet(
        self, db: AsyncSession, round_id: int, user_id: str
    ) -> Bet | None: ...

    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet: ...

    async def add_to_pool(
        self, db: AsyncSession, round_id: int, direction: bool, amount: int
    ) -> None: ...

    async def list_round_bets(self, db: AsyncSession, round_id: int) -> list[Bet]: ...

    async def mark_bets_claimed(
        self,
        db: AsyncSession,
        round_id: int,
        payouts: Mapping[str, tuple[int, SettlementKind]],
    ) -> None: ...  # user_id -> (payout, kind)

    async def mark_round_resolved(
        self,
        db: AsyncSession,
        round_id: int,
        end_price: int,
        up_won: bool,
        retained_remainder: int,
        resolved_at: datetime,
    ) -> None: ...

    async def list_user_rounds(self, db: AsyncSession, user_id: str) -> list[UserRound]: ...
