"""Global conservation check: funds in accounts plus open pools == net deposits."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# House account included: it holds the settlement remainders
_ACCOUNT_BALANCE_SQL = text("SELECT COALESCE(SUM(balance), 0) FROM accounts")
_OPEN_POOLS_SQL = text("""
    SELECT COALESCE(SUM(up_pool + down_pool), 0)
    FROM rounds
    WHERE resolved = FALSE
""")
# WITHDRAW entries are stored negative
_NET_DEPOSIT_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM ledger_entries
    WHERE entry_type IN ('DEPOSIT', 'WITHDRAW')
""")


async def verify_global_invariants(db: AsyncSession) -> list[str]:
    """Check INV-G: total funds == net deposits. Returns list of violation strings."""
    violations: list[str] = []
    balances = int((await db.execute(_ACCOUNT_BALANCE_SQL)).scalar_one())
    open_pools = int((await db.execute(_OPEN_POOLS_SQL)).scalar_one())
    net_deposits = int((await db.execute(_NET_DEPOSIT_SQL)).scalar_one())

    total_funds = balances + open_pools
    if total_funds != net_deposits:
        msg = (
            f"INV-G violated: balances({balances}) + open_pools({open_pools}) "
            f"= {total_funds} != net_deposits={net_deposits}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations
