from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


class BookingDirection(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class BookingCategory(str, enum.Enum):
    WORK = "WORK"
    BREAK = "BREAK"
    TRIP = "TRIP"


class BookingSource(str, enum.Enum):
    DEVICE = "DEVICE"
    MANUAL = "MANUAL"
    CORRECTION = "CORRECTION"
    IMPORT = "IMPORT"


class BreakType(str, enum.Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"
    MINIMUM = "MINIMUM"


class RoundingMode(str, enum.Enum):
    NONE = "NONE"
    UP = "UP"
    DOWN = "DOWN"
    NEAREST = "NEAREST"
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"


class NoBookingBehavior(str, enum.Enum):
    ERROR = "ERROR"
    DEDUCT_TARGET = "DEDUCT_TARGET"
    ADOPT_TARGET = "ADOPT_TARGET"
    VOCATIONAL_SCHOOL = "VOCATIONAL_SCHOOL"


class CreditType(str, enum.Enum):
    NO_EVALUATION = "no_evaluation"
    COMPLETE_CARRYOVER = "complete_carryover"
    AFTER_THRESHOLD = "after_threshold"
    NO_CARRYOVER = "no_carryover"


class DayStatus(str, enum.Enum):
    CALCULATED = "CALCULATED"
    ERROR = "ERROR"
    OFF = "OFF"
    HOLIDAY = "HOLIDAY"
    ABSENCE = "ABSENCE"


class ClosedMonthPolicy(str, enum.Enum):
    SKIP = "skip"
    ERROR = "error"


def format_minute(minute: int) -> str:
    hours, minutes = divmod(minute, MINUTES_PER_HOUR)
    return f"{hours:02d}:{minutes:02d}"


@dataclass(frozen=True)
class BookingEvent:
    employee_id: int
    day_date: date
    minute: int
    direction: BookingDirection
    category: BookingCategory = BookingCategory.WORK
    source: BookingSource = BookingSource.DEVICE
    event_id: int | None = None
    # Set by the caller for a booking made after midnight that closes this day's shift.
    next_day: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.minute < MINUTES_PER_DAY:
            raise ValueError(f"minute-of-day out of range: {self.minute}")

    @property
    def absolute_minute(self) -> int:
        return self.minute + (MINUTES_PER_DAY if self.next_day else 0)


@dataclass(frozen=True)
class BookingPair:
    """One in/out interval of a single category.

    ``start_minute``/``end_minute`` are the effective times used for durations;
    they start out as the raw booking times and are replaced by the tolerance
    and rounding step. A pair missing ``come`` or ``go`` is unpaired.
    """

    category: BookingCategory
    come: BookingEvent | None
    go: BookingEvent | None
    start_minute: int | None
    end_minute: int | None
    cross_midnight: bool = False

    @property
    def is_complete(self) -> bool:
        return self.come is not None and self.go is not None

    @property
    def duration(self) -> int:
        if not self.is_complete or self.start_minute is None or self.end_minute is None:
            return 0
        return max(0, self.end_minute - self.start_minute)
