"""RoundApplicationService: composition layer over RoundLedger and the repository.

Writes (place_bet, resolve_round, open_initial_round) go through the
process-wide RoundLedger and commit here; reads hit the repository directly
and see the last committed state.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.amounts import amount_to_display
from src.pp_common.errors import AlreadyResolvedError, RoundNotFoundError
from src.pp_round.application.schemas import (
    BetResponse,
    ConfigResponse,
    PlaceBetRequest,
    ResolveRoundRequest,
    ResolveRoundResponse,
    RoundDetailResponse,
    RoundResponse,
    UserRoundItem,
    UserRoundsResponse,
)
from src.pp_round.domain.models import RoundInfo
from src.pp_round.domain.repository import RoundRepositoryProtocol
from src.pp_round.engine.ledger import RoundLedger
from src.pp_round.infrastructure.persistence import RoundRepository

logger = logging.getLogger(__name__)

_ledger: RoundLedger | None = None


def get_round_ledger() -> RoundLedger:
    global _ledger  # noqa: PLW0603
    if _ledger is None:
        _ledger = RoundLedger()
    return _ledger


class RoundApplicationService:
    def __init__(
        self,
        repo: RoundRepositoryProtocol | None = None,
        ledger: RoundLedger | None = None,
    ) -> None:
        self._repo: RoundRepositoryProtocol = repo or RoundRepository()
        self._ledger = ledger

    @property
    def ledger(self) -> RoundLedger:
        return self._ledger or get_round_ledger()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_round_details(self, db: AsyncSession) -> RoundResponse:
        rnd = await self._repo.get_current_round(db)
        if rnd is None:
            raise RoundNotFoundError("current")
        return RoundResponse.from_domain(rnd)

    async def get_round(self, db: AsyncSession, round_id: int) -> RoundDetailResponse:
        rnd = await self._repo.get_round(db, round_id)
        if rnd is None:
            raise RoundNotFoundError(round_id)
        bets = await self._repo.list_round_bets(db, round_id)
        info = RoundInfo(round=rnd, participants=[b.user_id for b in bets])
        return RoundDetailResponse.from_info(info)

    async def get_user_rounds(self, db: AsyncSession, user_id: str) -> UserRoundsResponse:
        entries = await self._repo.list_user_rounds(db, user_id)
        return UserRoundsResponse(
            user_id=user_id,
            items=[UserRoundItem.from_domain(e) for e in entries],
        )

    def get_config(self) -> ConfigResponse:
        ledger = self.ledger
        return ConfigResponse(
            min_bet=str(ledger.min_bet),
            min_bet_display=amount_to_display(ledger.min_bet),
            round_duration_seconds=int(ledger.round_duration.total_seconds()),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def place_bet(
        self, db: AsyncSession, user_id: str, req: PlaceBetRequest
    ) -> BetResponse:
        try:
            bet = await self.ledger.place_bet(user_id, req.direction.is_up, req.amount, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BetResponse.from_domain(bet)

    async def resolve_round(
        self, db: AsyncSession, req: ResolveRoundRequest
    ) -> ResolveRoundResponse:
        try:
            result = await self.ledger.resolve_round(
                req.end_price, req.next_start_price, db, round_id=req.round_id
            )
            await db.commit()
        except AlreadyResolvedError as exc:
            await db.rollback()
            logger.info("Resolve skipped: %s", exc.message)
            raise
        except Exception:
            await db.rollback()
            raise
        return ResolveRoundResponse.from_result(result)

    async def open_initial_round(self, db: AsyncSession, start_price: int) -> RoundResponse:
        try:
            rnd = await self.ledger.open_initial_round(start_price, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return RoundResponse.from_domain(rnd)
