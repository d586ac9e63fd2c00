"""
Clock abstraction

Services read "now" and "today" through a clock so booking-window bounds
and upcoming checks can be pinned in tests.
"""

from datetime import date, datetime, timedelta
from typing import Optional


class Clock:
    """Source of the current local date and time"""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time of the running process"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """A clock frozen at a given instant, advanced only explicitly"""

    def __init__(self, current: Optional[datetime] = None):
        self.current = current or datetime.now()

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current
