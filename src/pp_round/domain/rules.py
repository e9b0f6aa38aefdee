"""Betting preconditions, checked under the ledger lock before any mutation."""

from src.pp_common.errors import AlreadyBetError, RoundClosedError, StakeTooLowError
from src.pp_round.domain.models import Bet, Round


def check_round_open(rnd: Round) -> None:
    if rnd.resolved:
        raise RoundClosedError(rnd.id)


def check_min_stake(amount: int, min_bet: int) -> None:
    """Raise StakeTooLowError if amount is below the configured minimum."""
    if amount < min_bet:
        raise StakeTooLowError(amount, min_bet)


def check_not_already_bet(existing: Bet | None, round_id: int, user_id: str) -> None:
    if existing is not None:
        raise AlreadyBetError(round_id, user_id)
