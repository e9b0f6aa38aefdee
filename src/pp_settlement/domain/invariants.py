"""Settlement invariant verification, run before any transfer is issued."""

import logging
from collections.abc import Sequence

from src.pp_round.domain.models import Bet, Round
from src.pp_settlement.domain.models import SettlementPlan

logger = logging.getLogger(__name__)


def verify_pool_matches_bets(rnd: Round, bets: Sequence[Bet]) -> None:
    """INV-P: up_pool/down_pool equal the stakes placed on each side."""
    up = sum(b.amount for b in bets if b.direction)
    down = sum(b.amount for b in bets if not b.direction)
    assert rnd.up_pool == up, f"INV-P violated: round {rnd.id} up_pool={rnd.up_pool} != bets={up}"
    assert rnd.down_pool == down, (
        f"INV-P violated: round {rnd.id} down_pool={rnd.down_pool} != bets={down}"
    )
    users = [b.user_id for b in bets]
    assert len(users) == len(set(users)), f"INV-P violated: duplicate bettor in round {rnd.id}"


def verify_conservation(plan: SettlementPlan) -> None:
    """Verify a settlement plan pays out no more than the pools hold.

    INV-C1: stakes being settled == up_pool + down_pool
    INV-C2: remainder >= 0, and 0 on the refund branch
    INV-C3: remainder < number of winners (one unit of dust per floor at most)
    INV-C4: refund branch returns every stake exactly
    """
    stakes = sum(p.stake for p in plan.payouts)
    assert stakes == plan.total_pool, (
        f"INV-C1 violated: stakes({stakes}) != pool({plan.total_pool}) in round {plan.round_id}"
    )
    paid = plan.total_paid
    remainder = plan.remainder
    assert remainder >= 0, f"INV-C2 violated: round {plan.round_id} overpays by {-remainder}"
    if plan.refund:
        assert remainder == 0, f"INV-C2 violated: refund round {plan.round_id} kept {remainder}"
        assert all(p.amount == p.stake for p in plan.payouts), (
            f"INV-C4 violated: refund round {plan.round_id} altered a stake"
        )
    else:
        winners = sum(1 for p in plan.payouts if p.amount > 0)
        assert remainder < max(winners, 1), (
            f"INV-C3 violated: remainder {remainder} >= winners {winners}"
        )

    logger.debug(
        "Settlement invariants OK: round=%s, pool=%d, paid=%d, remainder=%d",
        plan.round_id, plan.total_pool, paid, remainder,
    )
