"""Pool-based payout rules.

Payout rule per bet (amount, direction):
  - refund branch (winning pool or losing pool empty, or end == start):
        payout = amount
  - otherwise, winner: payout = amount + floor(amount * losing_pool / winning_pool)
  - otherwise, loser:  payout = 0

All arithmetic is integer; the floor remainder stays with the engine.
"""

from collections.abc import Sequence

from src.pp_common.enums import SettlementKind
from src.pp_common.errors import DivisionGuardViolatedError
from src.pp_round.domain.models import Bet, Round
from src.pp_settlement.domain.models import Payout, SettlementPlan


def decide_up_won(start_price: int, end_price: int) -> bool:
    """Up wins only on a strict increase; a tie is not an up win."""
    return end_price > start_price


def proportional_share(round_id: int, amount: int, losing_pool: int, winning_pool: int) -> int:
    """A winner's floor share of the losing pool.

    A zero winning pool here means the refund branch was skipped by mistake,
    so it raises instead of dividing.
    """
    if winning_pool <= 0:
        raise DivisionGuardViolatedError(round_id)
    return amount * losing_pool // winning_pool


def plan_settlement(rnd: Round, bets: Sequence[Bet], end_price: int) -> SettlementPlan:
    """Compute every participant's payout for a round closing at end_price.

    Pure: nothing is mutated and no transfer is issued.
    """
    up_won = decide_up_won(rnd.start_price, end_price)
    winning_pool = rnd.up_pool if up_won else rnd.down_pool
    losing_pool = rnd.down_pool if up_won else rnd.up_pool
    tie = end_price == rnd.start_price
    refund = tie or winning_pool == 0 or losing_pool == 0

    plan = SettlementPlan(
        round_id=rnd.id,
        end_price=end_price,
        up_won=up_won,
        refund=refund,
        winning_pool=winning_pool,
        losing_pool=losing_pool,
    )
    for bet in bets:
        if refund:
            payout = Payout(bet.user_id, bet.amount, bet.direction, bet.amount, SettlementKind.REFUND)
        elif bet.direction == up_won:
            share = proportional_share(rnd.id, bet.amount, losing_pool, winning_pool)
            payout = Payout(
                bet.user_id, bet.amount, bet.direction, bet.amount + share, SettlementKind.WIN
            )
        else:
            payout = Payout(bet.user_id, bet.amount, bet.direction, 0, SettlementKind.LOSS)
        plan.payouts.append(payout)
    return plan
