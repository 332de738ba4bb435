from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from timecalc.codes import CalcCode, partition_codes
from timecalc.errors import InvalidPeriodError
from timecalc.models import CreditType
from timecalc.schemas import AbsenceSummary, DailyResult, MonthlyEvaluationRules, MonthlyResult

logger = logging.getLogger("timecalc.monthly")


@dataclass(frozen=True)
class CreditOutcome:
    flextime_end: int
    credited: int
    forfeited: int
    codes: tuple[CalcCode, ...]


@dataclass(frozen=True)
class MonthTotals:
    gross_minutes: int = 0
    net_minutes: int = 0
    target_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    break_minutes: int = 0
    work_days: int = 0
    days_with_errors: int = 0


def sum_daily_results(daily_results: Iterable[DailyResult]) -> MonthTotals:
    gross = net = target = overtime = undertime = breaks = work_days = error_days = 0
    for day in daily_results:
        gross += day.gross_minutes
        net += day.net_minutes
        target += day.target_minutes
        overtime += day.overtime_minutes
        undertime += day.undertime_minutes
        breaks += day.break_minutes
        if day.gross_minutes > 0:
            work_days += 1
        if day.has_error:
            error_days += 1
    return MonthTotals(
        gross_minutes=gross,
        net_minutes=net,
        target_minutes=target,
        overtime_minutes=overtime,
        undertime_minutes=undertime,
        break_minutes=breaks,
        work_days=work_days,
        days_with_errors=error_days,
    )


def _apply_annual_caps(
    balance: int,
    rules: MonthlyEvaluationRules,
    codes: list[CalcCode],
) -> tuple[int, int]:
    forfeited = 0
    if rules.upper_annual_cap is not None and balance > rules.upper_annual_cap:
        forfeited = balance - rules.upper_annual_cap
        balance = rules.upper_annual_cap
        codes.append(CalcCode.FLEXTIME_CAPPED)
    if rules.lower_annual_cap is not None:
        floor = -abs(rules.lower_annual_cap)
        if balance < floor:
            balance = floor
            codes.append(CalcCode.FLEXTIME_CAPPED)
    return balance, forfeited


def apply_credit_type(
    *,
    previous_carryover: int,
    overtime_minutes: int,
    undertime_minutes: int,
    rules: MonthlyEvaluationRules | None,
) -> CreditOutcome:
    """Turn a month's overtime/undertime into the closing flextime balance.

    ``credited`` is the overtime that reached the balance, ``forfeited`` the
    overtime lost to the monthly cap, the threshold, a reset or the upper
    annual cap.
    """
    overtime = max(0, overtime_minutes)
    undertime = max(0, undertime_minutes)
    credit_type = rules.credit_type if rules is not None else CreditType.NO_EVALUATION

    if rules is None or credit_type == CreditType.NO_EVALUATION:
        return CreditOutcome(
            flextime_end=previous_carryover + overtime - undertime,
            credited=overtime,
            forfeited=0,
            codes=(),
        )

    if credit_type == CreditType.NO_CARRYOVER:
        return CreditOutcome(
            flextime_end=0,
            credited=0,
            forfeited=overtime,
            codes=(CalcCode.NO_CARRYOVER,),
        )

    codes: list[CalcCode] = []
    threshold = rules.flextime_threshold or 0
    if credit_type == CreditType.AFTER_THRESHOLD and overtime < threshold:
        credited = 0
        if overtime > 0:
            codes.append(CalcCode.BELOW_THRESHOLD)
    else:
        credited = overtime
        if rules.monthly_cap is not None and credited > rules.monthly_cap:
            credited = rules.monthly_cap
            codes.append(CalcCode.MONTHLY_CAP_REACHED)

    balance, capped_away = _apply_annual_caps(previous_carryover + credited - undertime, rules, codes)
    return CreditOutcome(
        flextime_end=balance,
        credited=credited,
        forfeited=overtime - credited + capped_away,
        codes=tuple(codes),
    )


def calculate_month(
    *,
    employee_id: int,
    year: int,
    month: int,
    daily_results: Iterable[DailyResult],
    previous_carryover: int = 0,
    rules: MonthlyEvaluationRules | None = None,
    absence_summary: AbsenceSummary | None = None,
) -> MonthlyResult:
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"month must be between 1 and 12, got {month}")

    days = list(daily_results)
    for day in days:
        if day.employee_id != employee_id or (day.day_date.year, day.day_date.month) != (year, month):
            raise InvalidPeriodError(
                f"daily result {day.employee_id}/{day.day_date.isoformat()} "
                f"does not belong to employee {employee_id} in {year:04d}-{month:02d}"
            )

    totals = sum_daily_results(days)
    credit = apply_credit_type(
        previous_carryover=previous_carryover,
        overtime_minutes=totals.overtime_minutes,
        undertime_minutes=totals.undertime_minutes,
        rules=rules,
    )
    _, warnings = partition_codes(credit.codes)
    summary = absence_summary or AbsenceSummary()

    result = MonthlyResult(
        employee_id=employee_id,
        year=year,
        month=month,
        total_gross_minutes=totals.gross_minutes,
        total_net_minutes=totals.net_minutes,
        total_target_minutes=totals.target_minutes,
        total_overtime_minutes=totals.overtime_minutes,
        total_undertime_minutes=totals.undertime_minutes,
        total_break_minutes=totals.break_minutes,
        flextime_start=previous_carryover,
        flextime_change=totals.overtime_minutes - totals.undertime_minutes,
        flextime_credited=credit.credited,
        flextime_forfeited=credit.forfeited,
        flextime_end=credit.flextime_end,
        work_days=totals.work_days,
        days_with_errors=totals.days_with_errors,
        vacation_taken=summary.vacation_days,
        sick_days=summary.sick_days,
        other_absence_days=summary.other_absence_days,
        warnings=warnings,
    )
    logger.debug(
        "monthly_calculated",
        extra={
            "employee_id": employee_id,
            "year": year,
            "month": month,
            "flextime_start": result.flextime_start,
            "flextime_end": result.flextime_end,
        },
    )
    return result
