from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta

from timecalc.errors import CalculationError, FutureMonthError, InvalidPeriodError, MonthClosedError
from timecalc.models import ClosedMonthPolicy
from timecalc.schemas import DailyResult, EngineConfig, MonthlyResult
from timecalc.services.daily_calc import calculate_day
from timecalc.services.monthly_calc import calculate_month
from timecalc.services.sources import DailyInputs, DailyResultSink, MonthlyInputs, MonthlyResultSink

logger = logging.getLogger("timecalc.recalc")

YearMonth = tuple[int, int]


@dataclass(frozen=True)
class RecalcError:
    employee_id: int
    year: int
    month: int
    code: str
    message: str


@dataclass(frozen=True)
class RecalcOutcome:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: tuple[RecalcError, ...] = ()
    results: tuple[MonthlyResult, ...] = ()

    def merge(self, other: RecalcOutcome) -> RecalcOutcome:
        return RecalcOutcome(
            processed=self.processed + other.processed,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            errors=self.errors + other.errors,
            results=self.results + other.results,
        )

    def with_result(self, result: MonthlyResult) -> RecalcOutcome:
        return self.merge(RecalcOutcome(processed=1, results=(result,)))

    def with_skip(self) -> RecalcOutcome:
        return self.merge(RecalcOutcome(skipped=1))

    def with_failure(self, error: RecalcError) -> RecalcOutcome:
        return self.merge(RecalcOutcome(failed=1, errors=(error,)))


@dataclass(frozen=True)
class CascadeState:
    """Accumulator of the month fold; ``carryover`` is None until a month has been visited."""

    carryover: int | None = None
    outcome: RecalcOutcome = field(default_factory=RecalcOutcome)


def _validate_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"month must be between 1 and 12, got {month}")
    if not 1900 <= year <= 9999:
        raise InvalidPeriodError(f"year out of range: {year}")


def previous_month(year: int, month: int) -> YearMonth:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def next_month(year: int, month: int) -> YearMonth:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def iter_months(start: YearMonth, end: YearMonth) -> Iterator[YearMonth]:
    current = start
    while current <= end:
        yield current
        current = next_month(*current)


def _current_month(current: date) -> YearMonth:
    return current.year, current.month


def _error_entry(employee_id: int, year: int, month: int, exc: Exception) -> RecalcError:
    if isinstance(exc, CalculationError):
        return RecalcError(employee_id, year, month, exc.code, exc.message)
    return RecalcError(employee_id, year, month, "UNEXPECTED_ERROR", str(exc)[:500])


def recalculate_month(
    employee_id: int,
    year: int,
    month: int,
    *,
    source: MonthlyInputs,
    sink: MonthlyResultSink,
    current: date,
    previous_carryover: int | None = None,
) -> MonthlyResult:
    _validate_period(year, month)
    if (year, month) > _current_month(current):
        raise FutureMonthError(year, month)

    stored = source.get_monthly_result(employee_id, year, month)
    if stored is not None and stored.closed:
        raise MonthClosedError(employee_id, year, month)

    if previous_carryover is None:
        previous = source.get_monthly_result(employee_id, *previous_month(year, month))
        previous_carryover = previous.flextime_end if previous is not None else 0

    result = calculate_month(
        employee_id=employee_id,
        year=year,
        month=month,
        daily_results=source.get_daily_results(employee_id, year, month),
        previous_carryover=previous_carryover,
        rules=source.get_evaluation_rules(employee_id, year, month),
        absence_summary=source.get_absence_summary(employee_id, year, month),
    )
    sink.save_monthly_result(result)
    return result


def _cascade_step(
    state: CascadeState,
    employee_id: int,
    period: YearMonth,
    *,
    source: MonthlyInputs,
    sink: MonthlyResultSink,
    current: date,
    config: EngineConfig,
) -> CascadeState:
    year, month = period
    stored = source.get_monthly_result(employee_id, year, month)

    if stored is not None and stored.closed:
        if config.closed_month_policy == ClosedMonthPolicy.SKIP:
            logger.info(
                "monthly_recalc_skipped_closed",
                extra={"employee_id": employee_id, "year": year, "month": month},
            )
            outcome = state.outcome.with_skip()
        else:
            error = _error_entry(employee_id, year, month, MonthClosedError(employee_id, year, month))
            logger.warning(
                "monthly_recalc_closed_month",
                extra={"employee_id": employee_id, "year": year, "month": month, "error": error.message},
            )
            outcome = state.outcome.with_failure(error)
        return CascadeState(carryover=stored.flextime_end, outcome=outcome)

    try:
        result = recalculate_month(
            employee_id,
            year,
            month,
            source=source,
            sink=sink,
            current=current,
            previous_carryover=state.carryover,
        )
    except Exception as exc:
        error = _error_entry(employee_id, year, month, exc)
        logger.warning(
            "monthly_recalc_failed",
            extra={"employee_id": employee_id, "year": year, "month": month, "error": error.message},
        )
        carryover = stored.flextime_end if stored is not None else state.carryover
        return CascadeState(carryover=carryover, outcome=state.outcome.with_failure(error))

    return CascadeState(carryover=result.flextime_end, outcome=state.outcome.with_result(result))


def recalculate_from_month(
    employee_id: int,
    year: int,
    month: int,
    *,
    source: MonthlyInputs,
    sink: MonthlyResultSink,
    current: date,
    config: EngineConfig | None = None,
) -> RecalcOutcome:
    """Recalculate ``year/month`` and every following month up to ``current``.

    Each open month starts from the balance computed for the month before it
    in this run. Closed months are left untouched and their stored balance is
    carried into the next month. A failing month does not stop the cascade.
    """
    _validate_period(year, month)
    resolved_config = config or EngineConfig()

    state = CascadeState()
    for period in iter_months((year, month), _current_month(current)):
        state = _cascade_step(
            state,
            employee_id,
            period,
            source=source,
            sink=sink,
            current=current,
            config=resolved_config,
        )

    outcome = state.outcome
    logger.info(
        "monthly_recalc_cascade_done",
        extra={
            "employee_id": employee_id,
            "start_year": year,
            "start_month": month,
            "processed": outcome.processed,
            "skipped": outcome.skipped,
            "failed": outcome.failed,
        },
    )
    return outcome


def recalculate_days(
    employee_id: int,
    start: date,
    end: date,
    *,
    source: DailyInputs,
    sink: DailyResultSink,
    config: EngineConfig | None = None,
) -> list[DailyResult]:
    if end < start:
        raise InvalidPeriodError(f"end date {end.isoformat()} is before start date {start.isoformat()}")

    results: list[DailyResult] = []
    day = start
    while day <= end:
        result = calculate_day(
            source.get_bookings(employee_id, day),
            source.get_day_context(employee_id, day),
            config,
        )
        sink.save_daily_result(result)
        results.append(result)
        day += timedelta(days=1)
    return results


def recalculate_range(
    employee_id: int,
    start: date,
    end: date,
    *,
    daily_source: DailyInputs,
    daily_sink: DailyResultSink,
    monthly_source: MonthlyInputs,
    monthly_sink: MonthlyResultSink,
    current: date,
    config: EngineConfig | None = None,
) -> RecalcOutcome:
    """Recalculate the days in ``[start, end]`` and cascade from the first affected month."""
    recalculate_days(employee_id, start, end, source=daily_source, sink=daily_sink, config=config)
    return recalculate_from_month(
        employee_id,
        start.year,
        start.month,
        source=monthly_source,
        sink=monthly_sink,
        current=current,
        config=config,
    )


def calculate_month_batch(
    employee_ids: Iterable[int],
    year: int,
    month: int,
    *,
    source: MonthlyInputs,
    sink: MonthlyResultSink,
    current: date,
    config: EngineConfig | None = None,
) -> RecalcOutcome:
    resolved_config = config or EngineConfig()
    outcome = RecalcOutcome()

    for employee_id in employee_ids:
        try:
            result = recalculate_month(
                employee_id,
                year,
                month,
                source=source,
                sink=sink,
                current=current,
            )
        except MonthClosedError as exc:
            if resolved_config.closed_month_policy == ClosedMonthPolicy.SKIP:
                outcome = outcome.with_skip()
            else:
                outcome = outcome.with_failure(_error_entry(employee_id, year, month, exc))
            continue
        except Exception as exc:
            error = _error_entry(employee_id, year, month, exc)
            logger.warning(
                "monthly_batch_employee_failed",
                extra={"employee_id": employee_id, "year": year, "month": month, "error": error.message},
            )
            outcome = outcome.with_failure(error)
            continue
        outcome = outcome.with_result(result)

    logger.info(
        "monthly_batch_done",
        extra={
            "year": year,
            "month": month,
            "processed": outcome.processed,
            "skipped": outcome.skipped,
            "failed": outcome.failed,
        },
    )
    return outcome


def recalculate_from_month_batch(
    employee_ids: Iterable[int],
    year: int,
    month: int,
    *,
    source: MonthlyInputs,
    sink: MonthlyResultSink,
    current: date,
    config: EngineConfig | None = None,
) -> RecalcOutcome:
    outcome = RecalcOutcome()
    for employee_id in employee_ids:
        try:
            employee_outcome = recalculate_from_month(
                employee_id,
                year,
                month,
                source=source,
                sink=sink,
                current=current,
                config=config,
            )
        except Exception as exc:
            error = _error_entry(employee_id, year, month, exc)
            logger.warning(
                "monthly_cascade_employee_failed",
                extra={"employee_id": employee_id, "year": year, "month": month, "error": error.message},
            )
            outcome = outcome.with_failure(error)
            continue
        outcome = outcome.merge(employee_outcome)
    return outcome
