"""Admin application service."""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_round.application.schemas import RoundResponse
from src.pp_round.application.service import RoundApplicationService
from src.pp_round.domain.repository import RoundRepositoryProtocol
from src.pp_round.infrastructure.persistence import RoundRepository
from src.pp_settlement.domain.global_invariants import verify_global_invariants
from src.pp_settlement.domain.invariants import verify_pool_matches_bets


class AdminService:
    def __init__(
        self,
        repo: RoundRepositoryProtocol | None = None,
        rounds: RoundApplicationService | None = None,
    ) -> None:
        self._repo: RoundRepositoryProtocol = repo or RoundRepository()
        self._rounds = rounds or RoundApplicationService(self._repo)

    async def bootstrap_round(self, start_price: int, db: AsyncSession) -> RoundResponse:
        """Open round 1; a no-op returning the open round when one already exists."""
        return await self._rounds.open_initial_round(db, start_price)

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, Any]:
        """Run the open-round pool check (INV-P) and the global check (INV-G)."""
        violations: list[str] = []
        rnd = await self._repo.get_current_round(db)
        if rnd is not None and not rnd.resolved:
            bets = await self._repo.list_round_bets(db, rnd.id)
            try:
                verify_pool_matches_bets(rnd, bets)
            except AssertionError as e:
                violations.append(str(e))
        violations.extend(await verify_global_invariants(db))
        return {
            "ok": len(violations) == 0,
            "current_round_id": rnd.id if rnd else None,
            "violations": violations,
        }
