"""
Slot generation

Pure functions that turn a doctor's hour range into the candidate slot
times for one day. No I/O.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, List

from medicare.core.exceptions import InvalidArgumentError
from medicare.domain.directory.availability import AvailabilityDescriptor


def iter_slots(start_time: time, end_time: time, step_minutes: int) -> Iterator[time]:
    """Yield slot boundaries from ``start_time`` to ``end_time``, both inclusive.

    Stops at the last boundary that does not pass ``end_time``; a trailing
    partial step is never emitted.
    """
    if step_minutes is None or step_minutes <= 0:
        raise InvalidArgumentError(
            "Slot step must be a positive number of minutes",
            details={"step_minutes": step_minutes}
        )
    if start_time > end_time:
        raise InvalidArgumentError(
            "Slot start must not be after slot end",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()}
        )

    # Anchor on an arbitrary day so the arithmetic can't wrap past midnight.
    current = datetime.combine(date.min, start_time)
    end = datetime.combine(date.min, end_time)
    step = timedelta(minutes=step_minutes)

    while current <= end:
        yield current.time()
        current += step


def generate_slots(start_time: time, end_time: time, step_minutes: int) -> List[time]:
    """Ordered candidate slots; a list, so callers may iterate it repeatedly"""
    return list(iter_slots(start_time, end_time, step_minutes))


def candidate_slots(availability: AvailabilityDescriptor, day: date, step_minutes: int) -> List[time]:
    """Slots for ``day`` under ``availability``; empty on unavailable weekdays"""
    if not availability.available_on(day):
        return []
    return generate_slots(availability.hours.start, availability.hours.end, step_minutes)


def is_slot_boundary(availability: AvailabilityDescriptor, day: date, value: time, step_minutes: int) -> bool:
    """True if ``value`` is one of the slots ``availability`` yields on ``day``"""
    if step_minutes <= 0:
        raise InvalidArgumentError("Slot step must be a positive number of minutes")
    if not availability.covers(day, value):
        return False
    if value.second or value.microsecond:
        return False
    start = datetime.combine(date.min, availability.hours.start)
    offset = datetime.combine(date.min, value) - start
    return offset.total_seconds() % (step_minutes * 60) == 0
