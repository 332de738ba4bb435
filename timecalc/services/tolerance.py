from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from timecalc.codes import CalcCode
from timecalc.models import MINUTES_PER_DAY, BookingCategory, BookingPair, RoundingMode
from timecalc.schemas import DayPlan, RoundingConfig, ToleranceConfig


@dataclass(frozen=True)
class AdjustedPairs:
    pairs: tuple[BookingPair, ...]
    first_come: int | None
    last_go: int | None
    capped_minutes: int
    codes: tuple[CalcCode, ...]


def apply_come_tolerance(minute: int, expected: int | None, tolerance: ToleranceConfig) -> int:
    if expected is None:
        return minute
    if expected - tolerance.come_minus <= minute <= expected + tolerance.come_plus:
        return expected
    return minute


def apply_go_tolerance(minute: int, expected: int | None, tolerance: ToleranceConfig) -> int:
    if expected is None:
        return minute
    if expected - tolerance.go_minus <= minute <= expected + tolerance.go_plus:
        return expected
    return minute


def round_minute(minute: int, rounding: RoundingConfig | None) -> int:
    if rounding is None or rounding.mode == RoundingMode.NONE:
        return minute

    interval = rounding.interval
    if rounding.mode == RoundingMode.ADD:
        return minute + interval
    if rounding.mode == RoundingMode.SUBTRACT:
        return max(0, minute - interval)
    if interval <= 1:
        return minute
    if rounding.mode == RoundingMode.UP:
        return -(-minute // interval) * interval
    if rounding.mode == RoundingMode.DOWN:
        return (minute // interval) * interval
    # NEAREST, ties round up
    return ((minute + interval // 2) // interval) * interval


def _expected_go(plan: DayPlan) -> int | None:
    return plan.go_to if plan.go_to is not None else plan.go_from


def is_overnight(plan: DayPlan) -> bool:
    expected_go = _expected_go(plan)
    return plan.come_from is not None and expected_go is not None and expected_go < plan.come_from


def _shift_go_bound(bound: int | None, plan: DayPlan) -> int | None:
    """Move a go-side bound onto the next day when the plan ends after midnight."""
    if bound is None or not is_overnight(plan):
        return bound
    if plan.come_from is not None and bound < plan.come_from:
        return bound + MINUTES_PER_DAY
    return bound


def classify_come(minute: int | None, plan: DayPlan) -> list[CalcCode]:
    if minute is None:
        return []
    if plan.come_from is not None and minute < plan.come_from:
        return [CalcCode.EARLY_COME]
    if plan.come_to is not None and minute > plan.come_to:
        return [CalcCode.LATE_COME]
    return []


def classify_go(minute: int | None, plan: DayPlan) -> list[CalcCode]:
    if minute is None:
        return []
    go_from = _shift_go_bound(plan.go_from, plan)
    go_to = _shift_go_bound(plan.go_to, plan)
    if go_from is not None and minute < go_from:
        return [CalcCode.EARLY_GO]
    if go_to is not None and minute > go_to:
        return [CalcCode.LATE_GO]
    return []


def come_window_start(plan: DayPlan) -> int | None:
    if plan.come_from is None:
        return None
    if plan.variable_work_time:
        return max(0, plan.come_from - plan.tolerance.come_minus)
    return plan.come_from


def go_window_end(plan: DayPlan) -> int | None:
    go_to = _shift_go_bound(plan.go_to, plan)
    if go_to is None:
        return None
    return go_to + plan.tolerance.go_plus


def _cap_pair(pair: BookingPair, plan: DayPlan) -> BookingPair:
    start = pair.start_minute
    end = pair.end_minute
    if start is None or end is None:
        return pair

    window_start = come_window_start(plan)
    if window_start is not None and start < window_start:
        start = min(window_start, end)
    window_end = go_window_end(plan)
    if window_end is not None and end > window_end:
        end = max(window_end, start)

    if start == pair.start_minute and end == pair.end_minute:
        return pair
    return replace(pair, start_minute=start, end_minute=end)


def validate_core_hours(first_come: int | None, last_go: int | None, plan: DayPlan) -> list[CalcCode]:
    codes: list[CalcCode] = []
    if plan.core_start is not None and first_come is not None and first_come > plan.core_start:
        codes.append(CalcCode.MISSED_CORE_START)
    core_end = _shift_go_bound(plan.core_end, plan)
    if core_end is not None and last_go is not None and last_go < core_end:
        codes.append(CalcCode.MISSED_CORE_END)
    return codes


def adjust_pairs(pairs: Sequence[BookingPair], plan: DayPlan) -> AdjustedPairs:
    """Apply tolerance, rounding and evaluation-window capping to complete work pairs.

    Tolerance applies to every work come and go and always precedes rounding.
    Only the first come and the last go are rounded unless
    ``round_all_bookings`` is set. Early/late codes and the reported first
    come/last go use the rounded times, before capping.
    """
    work_indexes = [
        index
        for index, pair in enumerate(pairs)
        if pair.category == BookingCategory.WORK and pair.is_complete
    ]
    if not work_indexes:
        return AdjustedPairs(
            pairs=tuple(pairs),
            first_come=None,
            last_go=None,
            capped_minutes=0,
            codes=(),
        )

    first_index = min(work_indexes, key=lambda index: pairs[index].start_minute)
    last_index = max(work_indexes, key=lambda index: pairs[index].end_minute)
    expected_come = plan.come_from
    expected_go = _shift_go_bound(_expected_go(plan), plan)

    adjusted: list[BookingPair] = list(pairs)
    for index in work_indexes:
        pair = pairs[index]
        start = apply_come_tolerance(pair.start_minute, expected_come, plan.tolerance)
        if index == first_index or plan.round_all_bookings:
            start = round_minute(start, plan.rounding_come)
        end = apply_go_tolerance(pair.end_minute, expected_go, plan.tolerance)
        if index == last_index or plan.round_all_bookings:
            end = round_minute(end, plan.rounding_go)
        adjusted[index] = replace(pair, start_minute=start, end_minute=end)

    first_come = adjusted[first_index].start_minute
    last_go = adjusted[last_index].end_minute
    codes = classify_come(first_come, plan)
    codes.extend(classify_go(last_go, plan))

    capped_minutes = 0
    for index in work_indexes:
        before = adjusted[index]
        after = _cap_pair(before, plan)
        capped_minutes += before.duration - after.duration
        adjusted[index] = after

    return AdjustedPairs(
        pairs=tuple(adjusted),
        first_come=first_come,
        last_go=last_go,
        capped_minutes=capped_minutes,
        codes=tuple(codes),
    )
