from __future__ import annotations

from datetime import date
import unittest

from timecalc.errors import FutureMonthError, InvalidPeriodError, MonthClosedError
from timecalc.models import BookingDirection, BookingEvent, ClosedMonthPolicy, CreditType, DayStatus
from timecalc.schemas import (
    AbsenceSummary,
    DailyResult,
    DayContext,
    DayPlan,
    EngineConfig,
    MonthlyEvaluationRules,
    MonthlyResult,
)
from timecalc.services.recalc import (
    calculate_month_batch,
    iter_months,
    recalculate_days,
    recalculate_from_month,
    recalculate_from_month_batch,
    recalculate_month,
    recalculate_range,
)


class FakeMonthlyStore:
    """In-memory source and sink for month-level recalculation."""

    def __init__(self, *, overtime_per_month: int = 60) -> None:
        self.overtime_per_month = overtime_per_month
        self.results: dict[tuple[int, int, int], MonthlyResult] = {}
        self.daily: dict[tuple[int, int, int], list[DailyResult]] = {}
        self.failing: set[tuple[int, int, int]] = set()
        self.saved: list[MonthlyResult] = []
        self.rules = MonthlyEvaluationRules(credit_type=CreditType.COMPLETE_CARRYOVER)

    def get_daily_results(self, employee_id: int, year: int, month: int) -> list[DailyResult]:
        key = (employee_id, year, month)
        if key in self.failing:
            raise RuntimeError(f"daily results unavailable for {key}")
        if key in self.daily:
            return self.daily[key]
        return [
            DailyResult(
                employee_id=employee_id,
                day_date=date(year, month, 2),
                status=DayStatus.CALCULATED,
                gross_minutes=480 + self.overtime_per_month,
                net_minutes=480 + self.overtime_per_month,
                target_minutes=480,
                overtime_minutes=self.overtime_per_month,
            )
        ]

    def get_absence_summary(self, employee_id: int, year: int, month: int) -> AbsenceSummary:
        return AbsenceSummary()

    def get_evaluation_rules(self, employee_id: int, year: int, month: int) -> MonthlyEvaluationRules:
        return self.rules

    def get_monthly_result(self, employee_id: int, year: int, month: int) -> MonthlyResult | None:
        return self.results.get((employee_id, year, month))

    def save_monthly_result(self, result: MonthlyResult) -> None:
        self.saved.append(result)
        self.results[(result.employee_id, result.year, result.month)] = result

    def close(self, employee_id: int, year: int, month: int, flextime_end: int) -> MonthlyResult:
        closed = MonthlyResult(
            employee_id=employee_id,
            year=year,
            month=month,
            flextime_end=flextime_end,
            closed=True,
        )
        self.results[(employee_id, year, month)] = closed
        return closed


class FakeDailyStore:
    def __init__(self) -> None:
        self.saved: list[DailyResult] = []
        self.plan = DayPlan(code="STD", target_minutes=480)

    def get_bookings(self, employee_id: int, day_date: date) -> list[BookingEvent]:
        if day_date.weekday() >= 5:
            return []
        return [
            BookingEvent(employee_id, day_date, 480, BookingDirection.IN),
            BookingEvent(employee_id, day_date, 1020, BookingDirection.OUT),
        ]

    def get_day_context(self, employee_id: int, day_date: date) -> DayContext:
        plan = self.plan if day_date.weekday() < 5 else None
        return DayContext(employee_id=employee_id, day_date=day_date, day_plan=plan)

    def save_daily_result(self, result: DailyResult) -> None:
        self.saved.append(result)


class IterMonthsTests(unittest.TestCase):
    def test_crosses_year_boundary(self) -> None:
        self.assertEqual(list(iter_months((2025, 11), (2026, 2))), [(2025, 11), (2025, 12), (2026, 1), (2026, 2)])

    def test_empty_when_start_after_end(self) -> None:
        self.assertEqual(list(iter_months((2026, 3), (2026, 2))), [])


class RecalculateMonthTests(unittest.TestCase):
    def test_uses_stored_previous_month(self) -> None:
        store = FakeMonthlyStore()
        store.save_monthly_result(MonthlyResult(employee_id=1, year=2026, month=1, flextime_end=90))

        result = recalculate_month(1, 2026, 2, source=store, sink=store, current=date(2026, 3, 15))

        self.assertEqual(result.flextime_start, 90)
        self.assertEqual(result.flextime_end, 150)

    def test_future_month_rejected(self) -> None:
        store = FakeMonthlyStore()
        with self.assertRaises(FutureMonthError) as ctx:
            recalculate_month(1, 2026, 4, source=store, sink=store, current=date(2026, 3, 15))
        self.assertEqual(ctx.exception.code, "FUTURE_MONTH")

    def test_closed_month_rejected(self) -> None:
        store = FakeMonthlyStore()
        store.close(1, 2026, 2, 500)
        with self.assertRaises(MonthClosedError):
            recalculate_month(1, 2026, 2, source=store, sink=store, current=date(2026, 3, 15))
        self.assertEqual(store.saved, [])

    def test_invalid_month(self) -> None:
        store = FakeMonthlyStore()
        with self.assertRaises(InvalidPeriodError):
            recalculate_month(1, 2026, 0, source=store, sink=store, current=date(2026, 3, 15))


class CascadeTests(unittest.TestCase):
    def test_carryover_propagates(self) -> None:
        store = FakeMonthlyStore()

        outcome = recalculate_from_month(1, 2026, 1, source=store, sink=store, current=date(2026, 3, 10))

        self.assertEqual([result.flextime_end for result in outcome.results], [60, 120, 180])
        self.assertEqual([result.flextime_start for result in outcome.results], [0, 60, 120])
        self.assertEqual(outcome.processed, 3)
        self.assertEqual(outcome.skipped, 0)

    def test_fresh_balance_replaces_stale_stored_value(self) -> None:
        store = FakeMonthlyStore()
        store.save_monthly_result(MonthlyResult(employee_id=1, year=2026, month=2, flextime_end=9999))

        outcome = recalculate_from_month(1, 2026, 1, source=store, sink=store, current=date(2026, 3, 1))

        self.assertEqual(outcome.results[-1].flextime_start, 120)

    def test_closed_month_is_skipped_and_carried(self) -> None:
        store = FakeMonthlyStore()
        closed = store.close(1, 2026, 2, 500)

        outcome = recalculate_from_month(1, 2026, 1, source=store, sink=store, current=date(2026, 4, 30))

        self.assertEqual(outcome.skipped, 1)
        self.assertEqual(outcome.processed, 3)
        self.assertIs(store.get_monthly_result(1, 2026, 2), closed)
        march = store.get_monthly_result(1, 2026, 3)
        self.assertEqual(march.flextime_start, 500)
        self.assertEqual(march.flextime_end, 560)
        self.assertEqual(store.get_monthly_result(1, 2026, 4).flextime_end, 620)

    def test_closed_month_error_policy(self) -> None:
        store = FakeMonthlyStore()
        store.close(1, 2026, 2, 500)
        config = EngineConfig(closed_month_policy=ClosedMonthPolicy.ERROR)

        outcome = recalculate_from_month(
            1, 2026, 1, source=store, sink=store, current=date(2026, 3, 1), config=config
        )

        self.assertEqual(outcome.skipped, 0)
        self.assertEqual(outcome.failed, 1)
        self.assertEqual(outcome.errors[0].code, "MONTH_CLOSED")
        self.assertEqual(store.get_monthly_result(1, 2026, 3).flextime_start, 500)

    def test_failing_month_does_not_stop_cascade(self) -> None:
        store = FakeMonthlyStore()
        store.failing.add((1, 2026, 2))

        outcome = recalculate_from_month(1, 2026, 1, source=store, sink=store, current=date(2026, 3, 1))

        self.assertEqual(outcome.processed, 2)
        self.assertEqual(outcome.failed, 1)
        self.assertEqual(outcome.errors[0].month, 2)
        self.assertEqual(outcome.results[-1].flextime_start, 60)

    def test_never_runs_into_the_future(self) -> None:
        store = FakeMonthlyStore()

        outcome = recalculate_from_month(1, 2025, 11, source=store, sink=store, current=date(2026, 1, 20))

        self.assertEqual([(r.year, r.month) for r in outcome.results], [(2025, 11), (2025, 12), (2026, 1)])
        self.assertEqual(outcome.results[-1].flextime_end, 180)

    def test_start_after_current_is_empty(self) -> None:
        store = FakeMonthlyStore()

        outcome = recalculate_from_month(1, 2026, 5, source=store, sink=store, current=date(2026, 3, 1))

        self.assertEqual(outcome.processed, 0)
        self.assertEqual(store.saved, [])


class BatchTests(unittest.TestCase):
    def test_month_batch_isolates_failures(self) -> None:
        store = FakeMonthlyStore()
        store.failing.add((2, 2026, 2))
        store.close(3, 2026, 2, 10)

        outcome = calculate_month_batch([1, 2, 3, 4], 2026, 2, source=store, sink=store, current=date(2026, 3, 1))

        self.assertEqual(outcome.processed, 2)
        self.assertEqual(outcome.failed, 1)
        self.assertEqual(outcome.skipped, 1)
        self.assertEqual(outcome.errors[0].employee_id, 2)
        self.assertEqual(outcome.errors[0].code, "UNEXPECTED_ERROR")

    def test_cascade_batch_aggregates(self) -> None:
        store = FakeMonthlyStore()
        store.close(2, 2026, 2, 0)
        store.failing.add((3, 2026, 1))

        outcome = recalculate_from_month_batch([1, 2, 3], 2026, 1, source=store, sink=store, current=date(2026, 2, 1))

        self.assertEqual(outcome.processed, 1 + 1 + 1 + 1)
        self.assertEqual(outcome.skipped, 1)
        self.assertEqual(outcome.failed, 1)

    def test_future_month_batch_counts_failures(self) -> None:
        store = FakeMonthlyStore()

        outcome = calculate_month_batch([1, 2], 2026, 6, source=store, sink=store, current=date(2026, 3, 1))

        self.assertEqual(outcome.failed, 2)
        self.assertEqual({error.code for error in outcome.errors}, {"FUTURE_MONTH"})


class DailyRangeTests(unittest.TestCase):
    def test_recalculate_days_saves_every_day(self) -> None:
        daily = FakeDailyStore()

        results = recalculate_days(1, date(2026, 3, 2), date(2026, 3, 8), source=daily, sink=daily)

        self.assertEqual(len(results), 7)
        self.assertEqual(len(daily.saved), 7)
        self.assertEqual([r.status for r in results].count(DayStatus.OFF), 2)
        self.assertEqual(results[0].overtime_minutes, 60)

    def test_recalculate_days_rejects_reversed_range(self) -> None:
        daily = FakeDailyStore()
        with self.assertRaises(InvalidPeriodError):
            recalculate_days(1, date(2026, 3, 8), date(2026, 3, 2), source=daily, sink=daily)

    def test_recalculate_range_cascades(self) -> None:
        daily = FakeDailyStore()
        store = FakeMonthlyStore()

        outcome = recalculate_range(
            1,
            date(2026, 2, 27),
            date(2026, 3, 3),
            daily_source=daily,
            daily_sink=daily,
            monthly_source=store,
            monthly_sink=store,
            current=date(2026, 3, 20),
        )

        self.assertEqual(len(daily.saved), 5)
        self.assertEqual(outcome.processed, 2)
        self.assertEqual(outcome.results[-1].flextime_end, 120)


if __name__ == "__main__":
    unittest.main()
