"""Domain models for pp_settlement: pure dataclasses."""

from dataclasses import dataclass, field

from src.pp_common.enums import SettlementKind


@dataclass(frozen=True)
class Payout:
    """What one bet receives when its round is settled."""

    user_id: str
    stake: int
    direction: bool
    amount: int                      # delivered to the participant, 0 for a loss
    kind: SettlementKind


@dataclass
class SettlementPlan:
    """Outcome of a round before any transfer is issued."""

    round_id: int
    end_price: int
    up_won: bool
    refund: bool                     # refund branch taken
    winning_pool: int
    losing_pool: int
    payouts: list[Payout] = field(default_factory=list)

    @property
    def total_pool(self) -> int:
        return self.winning_pool + self.losing_pool

    @property
    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)

    @property
    def remainder(self) -> int:
        """Floor-division dust retained by the engine."""
        return self.total_pool - self.total_paid

    @property
    def participants(self) -> int:
        return len(self.payouts)
