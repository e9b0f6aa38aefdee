"""003: create rounds table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # id is assigned by the ledger (previous + 1), not by a sequence
    op.execute("""
        CREATE TABLE rounds (
            id                  BIGINT          PRIMARY KEY,
            start_time          TIMESTAMPTZ     NOT NULL,
            end_time            TIMESTAMPTZ     NOT NULL,
            start_price         BIGINT          NOT NULL,
            end_price           BIGINT          NOT NULL DEFAULT 0,
            up_pool             NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            down_pool           NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            resolved            BOOLEAN         NOT NULL DEFAULT FALSE,
            up_won              BOOLEAN         NOT NULL DEFAULT FALSE,
            retained_remainder  NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT ck_rounds_id_gte_1        CHECK (id >= 1),
            CONSTRAINT ck_rounds_time_order      CHECK (end_time > start_time),
            CONSTRAINT ck_rounds_start_price_gt_0 CHECK (start_price > 0),
            CONSTRAINT ck_rounds_pools_gte_0     CHECK (up_pool >= 0 AND down_pool >= 0),
            CONSTRAINT ck_rounds_resolved_at     CHECK (resolved = (resolved_at IS NOT NULL))
        );
    """)
    # At most one open round at any time
    op.execute("""
        CREATE UNIQUE INDEX uq_rounds_single_open
        ON rounds ((TRUE))
        WHERE resolved = FALSE;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS rounds CASCADE;")
