from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from timecalc.schemas import DayPlan, ShiftWindow


@dataclass(frozen=True)
class ShiftMatch:
    plan: DayPlan
    matched: bool
    switched: bool = False


def _within(minute: int | None, start: int | None, end: int | None) -> bool:
    if minute is None or start is None or end is None:
        return False
    return start <= minute <= end


def matches_window(window: ShiftWindow | None, first_come: int | None, last_go: int | None) -> bool:
    if window is None:
        return True
    if window.has_arrival and not _within(first_come, window.arrive_from, window.arrive_to):
        return False
    if window.has_departure and not _within(last_go, window.depart_from, window.depart_to):
        return False
    return True


def detect_shift(
    plan: DayPlan,
    alternatives: Sequence[DayPlan],
    *,
    first_come: int | None,
    last_go: int | None,
) -> ShiftMatch:
    """Pick the day plan whose arrival/departure windows contain the day's bookings.

    Alternatives are only considered when they declare a window of their own.
    When nothing matches, the assigned plan is kept and ``matched`` is False.
    """
    if matches_window(plan.shift_window, first_come, last_go):
        return ShiftMatch(plan=plan, matched=True)

    for alternative in alternatives:
        if alternative.shift_window is None:
            continue
        if matches_window(alternative.shift_window, first_come, last_go):
            return ShiftMatch(plan=alternative, matched=True, switched=True)

    return ShiftMatch(plan=plan, matched=False)
