from __future__ import annotations

import logging
from collections.abc import Iterable

from timecalc.codes import CalcCode, partition_codes
from timecalc.models import BookingCategory, BookingEvent, DayStatus, NoBookingBehavior
from timecalc.schemas import DailyResult, DayContext, DayPlan, EngineConfig
from timecalc.services.breaks import calculate_break_deduction
from timecalc.services.pairing import first_come, gross_minutes, last_go, pair_bookings
from timecalc.services.shift_detection import detect_shift
from timecalc.services.tolerance import adjust_pairs, validate_core_hours

logger = logging.getLogger("timecalc.daily")

_PRESENCE_CATEGORIES = {BookingCategory.WORK, BookingCategory.TRIP}


def resolve_target_minutes(plan: DayPlan, context: DayContext) -> int:
    if plan.use_employee_target and context.employee_target_minutes is not None:
        return context.employee_target_minutes
    if context.absence is not None and plan.alternate_target_minutes is not None:
        return plan.alternate_target_minutes
    return plan.target_minutes


def _build_result(
    context: DayContext,
    *,
    status: DayStatus,
    codes: Iterable[CalcCode],
    plan: DayPlan | None = None,
    target_minutes: int = 0,
    net_minutes: int = 0,
    gross_minutes: int = 0,
    break_minutes: int = 0,
    capped_minutes: int = 0,
    first_come: int | None = None,
    last_go: int | None = None,
    booking_count: int = 0,
) -> DailyResult:
    errors, warnings = partition_codes(codes)
    if errors and status == DayStatus.CALCULATED:
        status = DayStatus.ERROR
    return DailyResult(
        employee_id=context.employee_id,
        day_date=context.day_date,
        status=status,
        day_plan_code=plan.code if plan is not None else None,
        gross_minutes=gross_minutes,
        net_minutes=net_minutes,
        target_minutes=target_minutes,
        overtime_minutes=max(0, net_minutes - target_minutes),
        undertime_minutes=max(0, target_minutes - net_minutes),
        break_minutes=break_minutes,
        capped_minutes=capped_minutes,
        first_come=first_come,
        last_go=last_go,
        booking_count=booking_count,
        has_error=bool(errors),
        errors=errors,
        warnings=warnings,
    )


def _absence_result(context: DayContext, plan: DayPlan, target: int, *, on_holiday: bool) -> DailyResult:
    absence = context.absence
    credit = target if absence is None or absence.credit_minutes is None else absence.credit_minutes
    codes = [CalcCode.ABSENCE_DAY]
    if on_holiday:
        codes.append(CalcCode.ABSENCE_ON_HOLIDAY)
    return _build_result(
        context,
        status=DayStatus.ABSENCE,
        codes=codes,
        plan=plan,
        target_minutes=target,
        net_minutes=credit,
    )


def _holiday_result(context: DayContext, plan: DayPlan, target: int) -> DailyResult:
    category = context.holiday.category if context.holiday is not None else 1
    return _build_result(
        context,
        status=DayStatus.HOLIDAY,
        codes=[CalcCode.HOLIDAY],
        plan=plan,
        target_minutes=target,
        net_minutes=plan.holiday_credits.get(category, 0),
    )


def _no_booking_result(context: DayContext, plan: DayPlan, target: int) -> DailyResult:
    behavior = plan.no_booking_behavior
    if behavior == NoBookingBehavior.DEDUCT_TARGET:
        return _build_result(
            context,
            status=DayStatus.CALCULATED,
            codes=[CalcCode.NO_BOOKINGS_DEDUCTED],
            plan=plan,
            target_minutes=target,
        )
    if behavior == NoBookingBehavior.ADOPT_TARGET:
        return _build_result(
            context,
            status=DayStatus.CALCULATED,
            codes=[CalcCode.NO_BOOKINGS_CREDITED],
            plan=plan,
            target_minutes=target,
            net_minutes=target,
        )
    if behavior == NoBookingBehavior.VOCATIONAL_SCHOOL:
        return _build_result(
            context,
            status=DayStatus.CALCULATED,
            codes=[CalcCode.VOCATIONAL_SCHOOL],
            plan=plan,
            target_minutes=target,
            net_minutes=target,
        )
    return _build_result(
        context,
        status=DayStatus.ERROR,
        codes=[CalcCode.NO_BOOKINGS],
        plan=plan,
        target_minutes=target,
    )


def _without_bookings(context: DayContext, plan: DayPlan) -> DailyResult:
    target = resolve_target_minutes(plan, context)
    if context.holiday is not None:
        if context.absence is not None and context.absence.overrides_holiday:
            return _absence_result(context, plan, target, on_holiday=True)
        return _holiday_result(context, plan, target)
    if context.absence is not None:
        return _absence_result(context, plan, target, on_holiday=False)
    return _no_booking_result(context, plan, target)


def _with_bookings(events: list[BookingEvent], context: DayContext, config: EngineConfig) -> DailyResult:
    pairing = pair_bookings(events)
    codes: list[CalcCode] = list(pairing.codes)

    for pair in pairing.unpaired:
        if pair.category != BookingCategory.WORK:
            continue
        codes.append(CalcCode.MISSING_GO if pair.go is None else CalcCode.MISSING_COME)
    if not any(event.category in _PRESENCE_CATEGORIES for event in events):
        codes.extend([CalcCode.MISSING_COME, CalcCode.MISSING_GO])

    raw_pairs = pairing.pairs + pairing.unpaired
    shift = detect_shift(
        context.day_plan,
        context.alternative_plans,
        first_come=first_come(raw_pairs),
        last_go=last_go(raw_pairs),
    )
    if not shift.matched:
        codes.append(CalcCode.NO_MATCHING_SHIFT)
    plan = shift.plan
    target = resolve_target_minutes(plan, context)

    adjusted = adjust_pairs(pairing.pairs, plan)
    codes.extend(adjusted.codes)

    gross = gross_minutes(adjusted.pairs, include_trips=config.count_trip_as_work)
    deduction = calculate_break_deduction(adjusted.pairs, gross, plan.breaks)
    codes.extend(deduction.codes)

    net = max(0, gross - deduction.deducted_minutes)
    if plan.max_net_minutes is not None and net > plan.max_net_minutes:
        net = plan.max_net_minutes
        codes.append(CalcCode.MAX_TIME_REACHED)
    if plan.min_work_minutes is not None and net < plan.min_work_minutes:
        codes.append(CalcCode.BELOW_MIN_WORK_TIME)

    if context.holiday is not None:
        codes.append(CalcCode.HOLIDAY)
    if context.absence is not None:
        codes.append(CalcCode.ABSENCE_DAY)

    first = adjusted.first_come
    if first is None:
        first = first_come(pairing.unpaired)
    last = adjusted.last_go
    if last is None:
        last = last_go(pairing.unpaired)
    codes.extend(validate_core_hours(first, last, plan))

    return _build_result(
        context,
        status=DayStatus.CALCULATED,
        codes=codes,
        plan=plan,
        target_minutes=target,
        net_minutes=net,
        gross_minutes=gross,
        break_minutes=deduction.deducted_minutes,
        capped_minutes=adjusted.capped_minutes,
        first_come=first,
        last_go=last,
        booking_count=len(events),
    )


def calculate_day(
    events: Iterable[BookingEvent],
    context: DayContext,
    config: EngineConfig | None = None,
) -> DailyResult:
    """Calculate one employee-day.

    Data problems never raise: they surface as error codes on a complete
    result with ``has_error`` set, so the month can always be aggregated.
    """
    resolved_config = config or EngineConfig()
    day_events = list(events)
    plan = context.day_plan

    if plan is None:
        codes = [CalcCode.OFF_DAY]
        if day_events:
            codes.append(CalcCode.BOOKINGS_ON_OFF_DAY)
        result = _build_result(
            context,
            status=DayStatus.OFF,
            codes=codes,
            booking_count=len(day_events),
        )
    elif not day_events:
        result = _without_bookings(context, plan)
    else:
        result = _with_bookings(day_events, context, resolved_config)

    logger.debug(
        "daily_calculated",
        extra={
            "employee_id": result.employee_id,
            "day_date": result.day_date.isoformat(),
            "status": result.status.value,
            "net_minutes": result.net_minutes,
            "has_error": result.has_error,
        },
    )
    return result
