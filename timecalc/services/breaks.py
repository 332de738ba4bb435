from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from timecalc.codes import CalcCode
from timecalc.models import BookingCategory, BookingPair, BreakType
from timecalc.schemas import BreakRule


@dataclass(frozen=True)
class BreakDeduction:
    deducted_minutes: int
    recorded_minutes: int
    codes: tuple[CalcCode, ...]


def overlap_minutes(a_start: int, a_end: int, b_start: int, b_end: int) -> int:
    return max(0, min(a_end, b_end) - max(a_start, b_start))


def fixed_break_minutes(pairs: Iterable[BookingPair], rule: BreakRule) -> int:
    if rule.start_minute is None or rule.end_minute is None:
        return 0
    overlap = 0
    for pair in pairs:
        if pair.category != BookingCategory.WORK or not pair.is_complete:
            continue
        if pair.start_minute is None or pair.end_minute is None:
            continue
        overlap += overlap_minutes(pair.start_minute, pair.end_minute, rule.start_minute, rule.end_minute)
    return min(rule.duration, overlap)


def minimum_break_minutes(gross_minutes: int, rule: BreakRule) -> int:
    """Break owed under a minimum-threshold rule for the given presence.

    Proportional rules only owe the presence beyond the threshold until the
    full duration is reached; a presence of exactly the threshold owes nothing.
    """
    threshold = rule.threshold_minutes or 0
    if not rule.proportional:
        return rule.duration if gross_minutes >= threshold else 0
    excess = gross_minutes - threshold
    if excess <= 0:
        return 0
    return min(rule.duration, excess)


def _variable_applies(gross_minutes: int, rule: BreakRule) -> bool:
    return rule.threshold_minutes is None or gross_minutes >= rule.threshold_minutes


def calculate_break_deduction(
    pairs: Sequence[BookingPair],
    gross_minutes: int,
    rules: Sequence[BreakRule],
) -> BreakDeduction:
    break_pairs = [pair for pair in pairs if pair.category == BookingCategory.BREAK and pair.is_complete]
    recorded = sum(pair.duration for pair in break_pairs)
    has_manual_break = bool(break_pairs)

    codes: list[CalcCode] = []
    if has_manual_break and rules:
        codes.append(CalcCode.MANUAL_BREAK)

    deducted = recorded
    required = 0
    for rule in rules:
        if rule.is_paid:
            continue
        if rule.break_type == BreakType.FIXED:
            deducted += fixed_break_minutes(pairs, rule)
            continue

        if rule.break_type == BreakType.VARIABLE:
            if not _variable_applies(gross_minutes, rule):
                continue
            required = max(required, rule.duration)
            if has_manual_break or not rule.auto_deduct:
                continue
            deducted += rule.duration
            codes.append(CalcCode.AUTO_BREAK_APPLIED)
            continue

        owed = minimum_break_minutes(gross_minutes, rule)
        if owed <= 0:
            continue
        required = max(required, owed)
        if has_manual_break or not rule.auto_deduct:
            continue
        deducted += owed
        if owed < rule.duration:
            codes.append(CalcCode.PARTIAL_BREAK)
        else:
            codes.append(CalcCode.AUTO_BREAK_APPLIED)

    if required > 0:
        if not has_manual_break:
            codes.append(CalcCode.NO_BREAK_RECORDED)
        elif recorded < required:
            codes.append(CalcCode.SHORT_BREAK)

    return BreakDeduction(
        deducted_minutes=deducted,
        recorded_minutes=recorded,
        codes=tuple(dict.fromkeys(codes)),
    )
