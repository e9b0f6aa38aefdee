"""RoundRepository: concrete implementation of RoundRepositoryProtocol.

All queries use raw text() SQL (no ORM). Pools and stakes are NUMERIC(78,0)
columns (asyncpg returns Decimal), converted to int in the row mappers.

Transaction ownership: RoundLedger wraps every write in a savepoint; the
application service commits.
"""

from collections.abc import Mapping
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.enums import SettlementKind
from src.pp_common.errors import InternalError
from src.pp_round.domain.models import Bet, Round, UserRound

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_ROUND_COLUMNS = """
    id, start_time, end_time, start_price, end_price,
    up_pool, down_pool, resolved, up_won, retained_remainder, resolved_at
"""

_GET_CURRENT_ROUND_SQL = text(f"""
    SELECT {_ROUND_COLUMNS}
    FROM rounds
    ORDER BY id DESC
    LIMIT 1
""")

# Serializes writers across processes; the asyncio lock only covers one process
_GET_CURRENT_ROUND_FOR_UPDATE_SQL = text(f"""
    SELECT {_ROUND_COLUMNS}
    FROM rounds
    ORDER BY id DESC
    LIMIT 1
    FOR UPDATE
""")

_GET_ROUND_SQL = text(f"""
    SELECT {_ROUND_COLUMNS}
    FROM rounds
    WHERE id = :round_id
""")

_INSERT_ROUND_SQL = text(f"""
    INSERT INTO rounds (id, start_time, end_time, start_price)
    VALUES (:id, :start_time, :end_time, :start_price)
    RETURNING {_ROUND_COLUMNS}
""")

_GET_BET_SQL = text("""
    SELECT id, round_id, user_id, amount, direction, claimed, payout, outcome, placed_at
    FROM bets
    WHERE round_id = :round_id AND user_id = :user_id
""")

_INSERT_BET_SQL = text("""
    INSERT INTO bets (round_id, user_id, amount, direction, placed_at)
    VALUES (:round_id, :user_id, :amount, :direction, :placed_at)
    RETURNING id, round_id, user_id, amount, direction, claimed, payout, outcome, placed_at
""")

_ADD_UP_POOL_SQL = text("""
    UPDATE rounds SET up_pool = up_pool + :amount
    WHERE id = :round_id AND resolved = FALSE
""")

_ADD_DOWN_POOL_SQL = text("""
    UPDATE rounds SET down_pool = down_pool + :amount
    WHERE id = :round_id AND resolved = FALSE
""")

_LIST_ROUND_BETS_SQL = text("""
    SELECT id, round_id, user_id, amount, direction, claimed, payout, outcome, placed_at
    FROM bets
    WHERE round_id = :round_id
    ORDER BY id ASC
""")

_CLAIM_BET_SQL = text("""
    UPDATE bets SET claimed = TRUE, payout = :payout, outcome = :outcome
    WHERE round_id = :round_id AND user_id = :user_id AND claimed = FALSE
""")

_RESOLVE_ROUND_SQL = text("""
    UPDATE rounds
    SET end_price = :end_price,
        up_won = :up_won,
        retained_remainder = :retained_remainder,
        resolved = TRUE,
        resolved_at = :resolved_at
    WHERE id = :round_id AND resolved = FALSE
""")

_LIST_USER_ROUNDS_SQL = text("""
    SELECT r.id, r.start_time, r.end_time, r.start_price, r.end_price,
           r.up_pool, r.down_pool, r.resolved, r.up_won,
           r.retained_remainder, r.resolved_at,
           b.id AS bet_id, b.user_id, b.amount, b.direction,
           b.claimed, b.payout, b.outcome, b.placed_at
    FROM bets b
    JOIN rounds r ON r.id = b.round_id
    WHERE b.user_id = :user_id
    ORDER BY b.id ASC
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_round(row: object) -> Round:
    return Round(
        id=row.id,  # type: ignore[attr-defined]
        start_time=row.start_time,  # type: ignore[attr-defined]
        end_time=row.end_time,  # type: ignore[attr-defined]
        start_price=row.start_price,  # type: ignore[attr-defined]
        end_price=row.end_price,  # type: ignore[attr-defined]
        up_pool=int(row.up_pool),  # type: ignore[attr-defined]
        down_pool=int(row.down_pool),  # type: ignore[attr-defined]
        resolved=row.resolved,  # type: ignore[attr-defined]
        up_won=row.up_won,  # type: ignore[attr-defined]
        retained_remainder=int(row.retained_remainder),  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


def _outcome(value: str | None) -> SettlementKind | None:
    return SettlementKind(value) if value is not None else None


def _row_to_bet(row: object) -> Bet:
    payout = row.payout  # type: ignore[attr-defined]
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        round_id=row.round_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        amount=int(row.amount),  # type: ignore[attr-defined]
        direction=row.direction,  # type: ignore[attr-defined]
        claimed=row.claimed,  # type: ignore[attr-defined]
        payout=int(payout) if payout is not None else None,
        outcome=_outcome(row.outcome),  # type: ignore[attr-defined]
        placed_at=row.placed_at,  # type: ignore[attr-defined]
    )


def _joined_row_to_bet(row: object) -> Bet:
    """Bet half of a bets JOIN rounds row (round columns come first)."""
    payout = row.payout  # type: ignore[attr-defined]
    return Bet(
        id=row.bet_id,  # type: ignore[attr-defined]
        round_id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        amount=int(row.amount),  # type: ignore[attr-defined]
        direction=row.direction,  # type: ignore[attr-defined]
        claimed=row.claimed,  # type: ignore[attr-defined]
        payout=int(payout) if payout is not None else None,
        outcome=_outcome(row.outcome),  # type: ignore[attr-defined]
        placed_at=row.placed_at,  # type: ignore[attr-defined]
    )


class RoundRepository:
    """Concrete repository for rounds and bets."""

    async def get_current_round(
        self, db: AsyncSession, for_update: bool = False
    ) -> Round | None:
        sql = _GET_CURRENT_ROUND_FOR_UPDATE_SQL if for_update else _GET_CURRENT_ROUND_SQL
        row = (await db.execute(sql)).fetchone()
        return _row_to_round(row) if row else None

    async def get_round(self, db: AsyncSession, round_id: int) -> Round | None:
        row = (await db.execute(_GET_ROUND_SQL, {"round_id": round_id})).fetchone()
        return _row_to_round(row) if row else None

    async def create_round(
        self,
        db: AsyncSession,
        round_id: int,
        start_price: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Round:
        row = (
            await db.execute(
                _INSERT_ROUND_SQL,
                {
                    "id": round_id,
                    "start_time": start_time,
                    "end_time": end_time,
                    "start_price": start_price,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Round insert returned no rows")
        return _row_to_round(row)

    async def get_bet(
        self, db: AsyncSession, round_id: int, user_id: str
    ) -> Bet | None:
        row = (
            await db.execute(_GET_BET_SQL, {"round_id": round_id, "user_id": user_id})
        ).fetchone()
        return _row_to_bet(row) if row else None

    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet:
        row = (
            await db.execute(
                _INSERT_BET_SQL,
                {
                    "round_id": bet.round_id,
                    "user_id": bet.user_id,
                    "amount": bet.amount,
                    "direction": bet.direction,
                    "placed_at": bet.placed_at,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows")
        return _row_to_bet(row)

    async def add_to_pool(
        self, db: AsyncSession, round_id: int, direction: bool, amount: int
    ) -> None:
        sql = _ADD_UP_POOL_SQL if direction else _ADD_DOWN_POOL_SQL
        result = await db.execute(sql, {"round_id": round_id, "amount": amount})
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise InternalError(f"Pool update touched no open round {round_id}")

    async def list_round_bets(self, db: AsyncSession, round_id: int) -> list[Bet]:
        rows = (await db.execute(_LIST_ROUND_BETS_SQL, {"round_id": round_id})).fetchall()
        return [_row_to_bet(row) for row in rows]

    async def mark_bets_claimed(
        self,
        db: AsyncSession,
        round_id: int,
        payouts: Mapping[str, tuple[int, SettlementKind]],
    ) -> None:
        for user_id, (payout, outcome) in payouts.items():
            result = await db.execute(
                _CLAIM_BET_SQL,
                {
                    "round_id": round_id,
                    "user_id": user_id,
                    "payout": payout,
                    "outcome": SettlementKind(outcome).value,
                },
            )
            if result.rowcount != 1:  # type: ignore[attr-defined]
                raise InternalError(f"Bet of {user_id} in round {round_id} already claimed")

    async def mark_round_resolved(
        self,
        db: AsyncSession,
        round_id: int,
        end_price: int,
        up_won: bool,
        retained_remainder: int,
        resolved_at: datetime,
    ) -> None:
        result = await db.execute(
            _RESOLVE_ROUND_SQL,
            {
                "round_id": round_id,
                "end_price": end_price,
                "up_won": up_won,
                "retained_remainder": retained_remainder,
                "resolved_at": resolved_at,
            },
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise InternalError(f"Round {round_id} was resolved concurrently")

    async def list_user_rounds(self, db: AsyncSession, user_id: str) -> list[UserRound]:
        rows = (await db.execute(_LIST_USER_ROUNDS_SQL, {"user_id": user_id})).fetchall()
        return [
            UserRound(round=_row_to_round(row), bet=_joined_row_to_bet(row))
            for row in rows
        ]
