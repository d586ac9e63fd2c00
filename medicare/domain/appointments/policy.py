"""
Booking window policy

New appointments may be created from today up to a configurable number of
calendar months ahead.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from medicare.core.clock import Clock
from medicare.core.config import settings
from medicare.core.exceptions import OutOfWindowError


def add_months(day: date, months: int) -> date:
    """Same day-of-month ``months`` later, clamped to the month's last day"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


@dataclass(frozen=True)
class BookingWindow:
    """Allowed booking dates relative to the clock's today"""
    lookahead_months: int = 3

    @classmethod
    def from_settings(cls) -> "BookingWindow":
        return cls(lookahead_months=settings.BOOKING_WINDOW_MONTHS)

    def bounds(self, today: date):
        return today, add_months(today, self.lookahead_months)

    def check(self, clock: Clock, day: date, at: Optional[time] = None) -> None:
        """Raise ``OutOfWindowError`` if ``day``/``at`` cannot be booked now"""
        now = clock.now()
        first, last = self.bounds(now.date())
        details = {
            "date": day.isoformat(),
            "min_date": first.isoformat(),
            "max_date": last.isoformat(),
        }
        if day < first:
            raise OutOfWindowError("Cannot book appointments for past dates", details=details)
        if day > last:
            raise OutOfWindowError(
                f"Appointments can be booked at most {self.lookahead_months} months ahead",
                details=details
            )
        if at is not None and datetime.combine(day, at) < now:
            raise OutOfWindowError("This time slot has already passed", details=details)
