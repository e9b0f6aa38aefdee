"""005: record how each bet was settled

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("ALTER TABLE bets ADD COLUMN outcome VARCHAR(10);")
    # Backfill settled bets from their round, same rule as the settlement engine
    op.execute("""
        UPDATE bets b
        SET outcome = CASE
            WHEN r.end_price = r.start_price OR r.up_pool = 0 OR r.down_pool = 0
                THEN 'REFUND'
            WHEN b.direction = r.up_won THEN 'WIN'
            ELSE 'LOSS'
        END
        FROM rounds r
        WHERE r.id = b.round_id AND b.claimed = TRUE;
    """)
    op.execute("""
        ALTER TABLE bets
            ADD CONSTRAINT ck_bets_outcome
                CHECK (outcome IS NULL OR outcome IN ('WIN', 'LOSS', 'REFUND')),
            ADD CONSTRAINT ck_bets_outcome_when_claimed
                CHECK ((outcome IS NULL) = (claimed = FALSE));
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE bets DROP CONSTRAINT IF EXISTS ck_bets_outcome_when_claimed;")
    op.execute("ALTER TABLE bets DROP CONSTRAINT IF EXISTS ck_bets_outcome;")
    op.execute("ALTER TABLE bets DROP COLUMN IF EXISTS outcome;")
