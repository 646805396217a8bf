"""Wall clock for age-based signals. Tests pass a fixed `now`."""
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_since(when: datetime, now: Optional[Clock] = None) -> float:
    """Whole days elapsed, never negative."""
    current = (now or utcnow)()
    elapsed = (current - when).total_seconds() // SECONDS_PER_DAY
    return float(max(elapsed, 0))
