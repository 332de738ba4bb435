from __future__ import annotations

import enum
from collections.abc import Iterable


class Severity(str, enum.Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class CalcCode(str, enum.Enum):
    MISSING_COME = "MISSING_COME"
    MISSING_GO = "MISSING_GO"
    UNPAIRED_BOOKING = "UNPAIRED_BOOKING"
    DUPLICATE_IN_TIME = "DUPLICATE_IN_TIME"
    BELOW_MIN_WORK_TIME = "BELOW_MIN_WORK_TIME"
    NO_MATCHING_SHIFT = "NO_MATCHING_SHIFT"
    NO_BOOKINGS = "NO_BOOKINGS"
    MISSED_CORE_START = "MISSED_CORE_START"
    MISSED_CORE_END = "MISSED_CORE_END"

    EARLY_COME = "EARLY_COME"
    LATE_COME = "LATE_COME"
    EARLY_GO = "EARLY_GO"
    LATE_GO = "LATE_GO"
    CROSS_MIDNIGHT = "CROSS_MIDNIGHT"
    MANUAL_BREAK = "MANUAL_BREAK"
    SHORT_BREAK = "SHORT_BREAK"
    NO_BREAK_RECORDED = "NO_BREAK_RECORDED"
    AUTO_BREAK_APPLIED = "AUTO_BREAK_APPLIED"
    PARTIAL_BREAK = "PARTIAL_BREAK"
    MAX_TIME_REACHED = "MAX_TIME_REACHED"
    OFF_DAY = "OFF_DAY"
    BOOKINGS_ON_OFF_DAY = "BOOKINGS_ON_OFF_DAY"
    HOLIDAY = "HOLIDAY"
    ABSENCE_DAY = "ABSENCE_DAY"
    ABSENCE_ON_HOLIDAY = "ABSENCE_ON_HOLIDAY"
    NO_BOOKINGS_CREDITED = "NO_BOOKINGS_CREDITED"
    NO_BOOKINGS_DEDUCTED = "NO_BOOKINGS_DEDUCTED"
    VOCATIONAL_SCHOOL = "VOCATIONAL_SCHOOL"
    MONTHLY_CAP_REACHED = "MONTHLY_CAP_REACHED"
    FLEXTIME_CAPPED = "FLEXTIME_CAPPED"
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    NO_CARRYOVER = "NO_CARRYOVER"


_ERROR_CODES = {
    CalcCode.MISSING_COME,
    CalcCode.MISSING_GO,
    CalcCode.UNPAIRED_BOOKING,
    CalcCode.DUPLICATE_IN_TIME,
    CalcCode.BELOW_MIN_WORK_TIME,
    CalcCode.NO_MATCHING_SHIFT,
    CalcCode.NO_BOOKINGS,
    CalcCode.MISSED_CORE_START,
    CalcCode.MISSED_CORE_END,
}

_WARNING_CODES = {
    CalcCode.EARLY_COME,
    CalcCode.LATE_COME,
    CalcCode.EARLY_GO,
    CalcCode.LATE_GO,
    CalcCode.CROSS_MIDNIGHT,
    CalcCode.MANUAL_BREAK,
    CalcCode.SHORT_BREAK,
    CalcCode.NO_BREAK_RECORDED,
    CalcCode.AUTO_BREAK_APPLIED,
    CalcCode.PARTIAL_BREAK,
    CalcCode.MAX_TIME_REACHED,
    CalcCode.OFF_DAY,
    CalcCode.BOOKINGS_ON_OFF_DAY,
    CalcCode.HOLIDAY,
    CalcCode.ABSENCE_DAY,
    CalcCode.ABSENCE_ON_HOLIDAY,
    CalcCode.NO_BOOKINGS_CREDITED,
    CalcCode.NO_BOOKINGS_DEDUCTED,
    CalcCode.VOCATIONAL_SCHOOL,
    CalcCode.MONTHLY_CAP_REACHED,
    CalcCode.FLEXTIME_CAPPED,
    CalcCode.BELOW_THRESHOLD,
    CalcCode.NO_CARRYOVER,
}

_SEVERITY: dict[CalcCode, Severity] = {
    **{code: Severity.ERROR for code in _ERROR_CODES},
    **{code: Severity.WARNING for code in _WARNING_CODES},
}

_unclassified = set(CalcCode) - set(_SEVERITY)
if _unclassified or _ERROR_CODES & _WARNING_CODES:
    raise RuntimeError(f"calculation codes without a single severity: {sorted(_unclassified)}")


def severity_of(code: CalcCode) -> Severity:
    return _SEVERITY[code]


def is_error(code: CalcCode) -> bool:
    return _SEVERITY[code] is Severity.ERROR


def partition_codes(codes: Iterable[CalcCode]) -> tuple[list[CalcCode], list[CalcCode]]:
    errors: list[CalcCode] = []
    warnings: list[CalcCode] = []
    seen: set[CalcCode] = set()
    for code in codes:
        if code in seen:
            continue
        seen.add(code)
        if is_error(code):
            errors.append(code)
        else:
            warnings.append(code)
    return errors, warnings
