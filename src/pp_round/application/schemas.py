"""Pydantic request/response schemas for pp_round API.

Stakes and pools can exceed 2**53, so they are serialized as decimal strings
alongside a human-readable display value; prices fit in a JSON number.
"""

from pydantic import BaseModel, Field

from src.pp_common.amounts import MAX_AMOUNT, MAX_PRICE, amount_to_display, price_to_display
from src.pp_common.datetime_utils import seconds_until
from src.pp_common.enums import BetDirection, SettlementKind
from src.pp_round.domain.models import Bet, Round, RoundInfo, UserRound
from src.pp_round.engine.ledger import ResolutionResult

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceBetRequest(BaseModel):
    direction: BetDirection
    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="Stake in smallest units")


class ResolveRoundRequest(BaseModel):
    end_price: int = Field(..., gt=0, le=MAX_PRICE, description="Closing price, 8 implied decimals")
    next_start_price: int = Field(
        ..., gt=0, le=MAX_PRICE, description="Opening price of the next round"
    )
    # Required so that repeating a resolve reports AlreadyResolved
    round_id: int = Field(..., ge=1, description="Round the resolver means to close")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RoundResponse(BaseModel):
    round_id: int
    status: str
    start_time: str
    end_time: str
    seconds_remaining: int           # 0 once the round may be resolved
    start_price: int
    start_price_display: str
    end_price: int
    end_price_display: str | None
    up_pool: str
    down_pool: str
    total_pool_display: str
    resolved: bool
    up_won: bool | None              # None while the round is open

    @classmethod
    def from_domain(cls, rnd: Round) -> "RoundResponse":
        return cls(
            round_id=rnd.id,
            status=rnd.status.value,
            start_time=rnd.start_time.isoformat(),
            end_time=rnd.end_time.isoformat(),
            seconds_remaining=0 if rnd.resolved else seconds_until(rnd.end_time),
            start_price=rnd.start_price,
            start_price_display=price_to_display(rnd.start_price),
            end_price=rnd.end_price,
            end_price_display=price_to_display(rnd.end_price) if rnd.resolved else None,
            up_pool=str(rnd.up_pool),
            down_pool=str(rnd.down_pool),
            total_pool_display=amount_to_display(rnd.total_pool),
            resolved=rnd.resolved,
            up_won=rnd.up_won if rnd.resolved else None,
        )


class RoundDetailResponse(RoundResponse):
    participants: list[str]

    @classmethod
    def from_info(cls, info: RoundInfo) -> "RoundDetailResponse":
        base = RoundResponse.from_domain(info.round)
        return cls(**base.model_dump(), participants=info.participants)


class BetResponse(BaseModel):
    round_id: int
    user_id: str
    direction: BetDirection
    amount: str
    amount_display: str
    claimed: bool
    payout: str | None
    outcome: SettlementKind | None  # None until the round is resolved
    placed_at: str | None

    @classmethod
    def from_domain(cls, bet: Bet) -> "BetResponse":
        return cls(
            round_id=bet.round_id,
            user_id=bet.user_id,
            direction=bet.side,
            amount=str(bet.amount),
            amount_display=amount_to_display(bet.amount),
            claimed=bet.claimed,
            payout=str(bet.payout) if bet.payout is not None else None,
            outcome=bet.outcome,
            placed_at=bet.placed_at.isoformat() if bet.placed_at else None,
        )


class UserRoundItem(BaseModel):
    round: RoundResponse
    bet: BetResponse
    won: bool | None                 # None while open and for refunded bets

    @classmethod
    def from_domain(cls, entry: UserRound) -> "UserRoundItem":
        outcome = entry.bet.outcome
        won = None if outcome in (None, SettlementKind.REFUND) else outcome is SettlementKind.WIN
        return cls(
            round=RoundResponse.from_domain(entry.round),
            bet=BetResponse.from_domain(entry.bet),
            won=won,
        )


class UserRoundsResponse(BaseModel):
    user_id: str
    items: list[UserRoundItem]


class ConfigResponse(BaseModel):
    min_bet: str
    min_bet_display: str
    round_duration_seconds: int


class ResolveRoundResponse(BaseModel):
    round_id: int
    end_price: int
    up_won: bool
    refund: bool
    participants_processed: int
    total_pool: str
    total_paid: str
    retained_remainder: str
    next_round: RoundResponse

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "ResolveRoundResponse":
        plan = result.plan
        return cls(
            round_id=result.closed_round_id,
            end_price=plan.end_price,
            up_won=plan.up_won,
            refund=plan.refund,
            participants_processed=result.participants_processed,
            total_pool=str(plan.total_pool),
            total_paid=str(plan.total_paid),
            retained_remainder=str(plan.remainder),
            next_round=RoundResponse.from_domain(result.next_round),
        )
