from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from timecalc.models import BookingEvent
from timecalc.schemas import (
    AbsenceSummary,
    DailyResult,
    DayContext,
    MonthlyEvaluationRules,
    MonthlyResult,
)


class BookingSource(Protocol):
    def get_bookings(self, employee_id: int, day_date: date) -> Sequence[BookingEvent]:
        raise NotImplementedError


class DayContextSource(Protocol):
    """Day plan, employee target, holiday and approved absence for one employee-day."""

    def get_day_context(self, employee_id: int, day_date: date) -> DayContext:
        raise NotImplementedError


class DailyResultSource(Protocol):
    def get_daily_results(self, employee_id: int, year: int, month: int) -> Sequence[DailyResult]:
        raise NotImplementedError


class AbsenceSummarySource(Protocol):
    def get_absence_summary(self, employee_id: int, year: int, month: int) -> AbsenceSummary:
        raise NotImplementedError


class EvaluationRulesSource(Protocol):
    def get_evaluation_rules(self, employee_id: int, year: int, month: int) -> MonthlyEvaluationRules | None:
        raise NotImplementedError


class MonthlyResultStore(Protocol):
    def get_monthly_result(self, employee_id: int, year: int, month: int) -> MonthlyResult | None:
        raise NotImplementedError


class DailyResultSink(Protocol):
    def save_daily_result(self, result: DailyResult) -> None:
        raise NotImplementedError


class MonthlyResultSink(Protocol):
    def save_monthly_result(self, result: MonthlyResult) -> None:
        raise NotImplementedError


class DailyInputs(BookingSource, DayContextSource, Protocol):
    pass


class MonthlyInputs(
    DailyResultSource,
    AbsenceSummarySource,
    EvaluationRulesSource,
    MonthlyResultStore,
    Protocol,
):
    pass
