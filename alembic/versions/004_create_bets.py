"""004: create bets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id          BIGSERIAL       PRIMARY KEY,
            round_id    BIGINT          NOT NULL REFERENCES rounds (id),
            user_id     VARCHAR(64)     NOT NULL,
            amount      NUMERIC(78, 0)  NOT NULL,
            direction   BOOLEAN         NOT NULL,
            claimed     BOOLEAN         NOT NULL DEFAULT FALSE,
            payout      NUMERIC(78, 0),
            placed_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_bets_round_user   UNIQUE (round_id, user_id),
            CONSTRAINT ck_bets_amount_gt_0  CHECK (amount > 0),
            CONSTRAINT ck_bets_payout_gte_0 CHECK (payout IS NULL OR payout >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_bets_user ON bets (user_id, id);")
    op.execute(
        "COMMENT ON COLUMN bets.direction IS 'TRUE = UP, FALSE = DOWN';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
