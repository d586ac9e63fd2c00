"""
Doctor availability descriptor

A doctor declares the weekdays and the time-of-day range in which slots may
be generated. The store keeps the compact text forms ``"Mon,Wed,Fri"`` and
``"09:00-17:00"``; the column types below turn them into structured values
on the way in and out, so the rest of the code never parses strings.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import FrozenSet, Iterable, Optional, Tuple, Union
import enum
import logging

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from medicare.core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class Weekday(str, enum.Enum):
    """Weekday abbreviations, in ``date.weekday()`` order"""
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"
    SUN = "Sun"

    @property
    def position(self) -> int:
        return _WEEK_ORDER.index(self)

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return _WEEK_ORDER[day.weekday()]

    @classmethod
    def parse(cls, token: str) -> "Weekday":
        key = token.strip()[:3].title()
        try:
            return cls(key)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown weekday: {token!r}",
                details={"value": token}
            ) from None


_WEEK_ORDER: Tuple[Weekday, ...] = tuple(Weekday)

DEFAULT_DAYS = "Mon,Tue,Wed,Thu,Fri"
DEFAULT_HOURS = "09:00-17:00"


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a naive local ``time``"""
    if isinstance(value, time):
        if value.tzinfo is not None:
            raise InvalidArgumentError(
                "Times of day are local; drop the UTC offset",
                details={"value": value.isoformat()}
            )
        return value.replace(microsecond=0)
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise InvalidArgumentError(
        f"Invalid time of day: {value!r}",
        details={"value": str(value)}
    )


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class TimeRange:
    """Inclusive time-of-day range with ``start <= end``"""
    start: time
    end: time

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidArgumentError(
                "Availability start must not be after end",
                details={"start": format_time_of_day(self.start), "end": format_time_of_day(self.end)}
            )

    @classmethod
    def parse(cls, value: Union[str, "TimeRange"]) -> "TimeRange":
        if isinstance(value, TimeRange):
            return value
        parts = str(value).split("-")
        if len(parts) != 2:
            raise InvalidArgumentError(
                f"Invalid hour range: {value!r}",
                details={"value": str(value)}
            )
        return cls(parse_time_of_day(parts[0]), parse_time_of_day(parts[1]))

    def contains(self, value: time) -> bool:
        return self.start <= value <= self.end

    def __str__(self) -> str:
        return f"{format_time_of_day(self.start)}-{format_time_of_day(self.end)}"


def parse_weekdays(value: Union[str, Iterable[Union[str, Weekday]]]) -> FrozenSet[Weekday]:
    """Parse ``"Mon,Tue"`` (or any iterable of tokens) into a weekday set"""
    tokens = value.split(",") if isinstance(value, str) else list(value)
    days = frozenset(
        token if isinstance(token, Weekday) else Weekday.parse(token)
        for token in tokens
        if isinstance(token, Weekday) or token.strip()
    )
    if not days:
        raise InvalidArgumentError("At least one available day is required")
    return days


def format_weekdays(days: Iterable[Weekday]) -> str:
    return ",".join(day.value for day in sorted(days, key=lambda d: d.position))


@dataclass(frozen=True)
class AvailabilityDescriptor:
    """Weekdays plus hour range during which a doctor can be booked"""
    days: FrozenSet[Weekday]
    hours: TimeRange

    @classmethod
    def parse(cls, days: Union[str, Iterable] = DEFAULT_DAYS, hours: Union[str, TimeRange] = DEFAULT_HOURS) -> "AvailabilityDescriptor":
        return cls(parse_weekdays(days), TimeRange.parse(hours))

    @property
    def ordered_days(self) -> Tuple[Weekday, ...]:
        return tuple(sorted(self.days, key=lambda d: d.position))

    def available_on(self, day: date) -> bool:
        return Weekday.from_date(day) in self.days

    def covers(self, day: date, value: time) -> bool:
        return self.available_on(day) and self.hours.contains(value)


class WeekdaySetType(TypeDecorator):
    """Stores a weekday set as ``"Mon,Tue,..."``"""
    impl = String(100)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return format_weekdays(parse_weekdays(value))

    def process_result_value(self, value, dialect) -> Optional[FrozenSet[Weekday]]:
        if value is None:
            return None
        try:
            return parse_weekdays(value)
        except InvalidArgumentError:
            logger.warning("Unreadable available_days %r in store; doctor is not bookable", value)
            return None


class TimeRangeType(TypeDecorator):
    """Stores a ``TimeRange`` as ``"HH:MM-HH:MM"``"""
    impl = String(100)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return str(TimeRange.parse(value))

    def process_result_value(self, value, dialect) -> Optional[TimeRange]:
        if value is None:
            return None
        try:
            return TimeRange.parse(value)
        except InvalidArgumentError:
            logger.warning("Unreadable available_hours %r in store; doctor is not bookable", value)
            return None
