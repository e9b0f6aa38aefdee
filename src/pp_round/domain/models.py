"""Domain models for pp_round: pure dataclasses, no business logic.

Amounts are ints in the smallest stake unit; prices are ints with 8 implied
decimals.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.pp_common.enums import BetDirection, RoundStatus, SettlementKind


@dataclass
class Round:
    id: int
    start_time: datetime
    end_time: datetime
    start_price: int
    end_price: int = 0               # 0 until resolved
    up_pool: int = 0
    down_pool: int = 0
    resolved: bool = False
    up_won: bool = False             # meaningful only when resolved
    retained_remainder: int = 0      # floor-division dust kept at settlement
    resolved_at: datetime | None = None

    @property
    def total_pool(self) -> int:
        return self.up_pool + self.down_pool

    @property
    def status(self) -> RoundStatus:
        return RoundStatus.RESOLVED if self.resolved else RoundStatus.OPEN

    def has_ended(self, now: datetime) -> bool:
        return now >= self.end_time


@dataclass
class Bet:
    round_id: int
    user_id: str
    amount: int
    direction: bool                  # True = up
    claimed: bool = False
    payout: int | None = None        # set when claimed
    outcome: SettlementKind | None = None  # set when claimed
    id: int | None = None            # BIGSERIAL, defines participant order
    placed_at: datetime | None = None

    @property
    def side(self) -> BetDirection:
        return BetDirection.from_flag(self.direction)


@dataclass
class UserRound:
    """One round a participant bet in, with the round as of read time."""

    round: Round
    bet: Bet


@dataclass
class RoundInfo:
    """Round plus its participants in bet order."""

    round: Round
    participants: list[str] = field(default_factory=list)
