"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class BetDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"

    @property
    def is_up(self) -> bool:
        return self is BetDirection.UP

    @classmethod
    def from_flag(cls, is_up: bool) -> "BetDirection":
        return cls.UP if is_up else cls.DOWN


class RoundStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class SettlementKind(str, Enum):
    """How a single bet was settled."""
    WIN = "WIN"
    LOSS = "LOSS"
    REFUND = "REFUND"


class PrincipalRole(str, Enum):
    PARTICIPANT = "participant"
    RESOLVER = "resolver"


class LedgerEntryType(str, Enum):
    # Deposit/Withdraw
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    # Stake escrowed into a round pool
    BET_STAKE = "BET_STAKE"
    # Settlement transfers
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
    SETTLEMENT_REFUND = "SETTLEMENT_REFUND"
    SETTLEMENT_REMAINDER = "SETTLEMENT_REMAINDER"
