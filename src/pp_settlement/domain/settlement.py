"""Round settlement: fix the outcome, pay every participant, close the round."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_round.domain.models import Round
from src.pp_round.domain.repository import RoundRepositoryProtocol
from src.pp_settlement.domain.invariants import verify_conservation, verify_pool_matches_bets
from src.pp_settlement.domain.models import SettlementPlan
from src.pp_settlement.domain.payout import plan_settlement
from src.pp_settlement.infrastructure.transfer import PayoutTransferProtocol

logger = logging.getLogger(__name__)


async def settle_round(
    rnd: Round,
    end_price: int,
    resolved_at: datetime,
    repo: RoundRepositoryProtocol,
    transfer: PayoutTransferProtocol,
    db: AsyncSession,
) -> SettlementPlan:
    """Settle an open, ended round inside the caller's savepoint.

    Order: plan (pure) -> verify -> transfers -> claim bets -> resolve round.
    Rounds and bets are only written after every transfer went through, and
    any failure propagates so the caller's savepoint discards the transfers too.
    """
    bets = await repo.list_round_bets(db, rnd.id)
    verify_pool_matches_bets(rnd, bets)

    plan = plan_settlement(rnd, bets, end_price)
    verify_conservation(plan)

    for payout in plan.payouts:
        await transfer.transfer(db, rnd.id, payout)
    await transfer.retain_remainder(db, rnd.id, plan.remainder)

    await repo.mark_bets_claimed(
        db, rnd.id, {p.user_id: (p.amount, p.kind) for p in plan.payouts}
    )
    await repo.mark_round_resolved(
        db, rnd.id, end_price, plan.up_won, plan.remainder, resolved_at
    )
    logger.info(
        "Round %d settled: end_price=%d up_won=%s refund=%s participants=%d paid=%d remainder=%d",
        rnd.id,
        end_price,
        plan.up_won,
        plan.refund,
        plan.participants,
        plan.total_paid,
        plan.remainder,
    )
    return plan
