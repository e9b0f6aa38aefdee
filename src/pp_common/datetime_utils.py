"""UTC clock helpers shared by the ledger and the read API."""

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware UTC now; the ledger's default clock."""
    return datetime.now(timezone.utc)


def seconds_until(moment: datetime, now: datetime | None = None) -> int:
    """Whole seconds left before moment, rounded up; 0 once it has passed."""
    delta = (moment - (now or utc_now())).total_seconds()
    return max(0, math.ceil(delta))
