from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timecalc.codes import CalcCode
from timecalc.models import (
    MINUTES_PER_DAY,
    BreakType,
    ClosedMonthPolicy,
    CreditType,
    DayStatus,
    NoBookingBehavior,
    RoundingMode,
)


class ToleranceConfig(BaseModel):
    come_plus: int = Field(default=0, ge=0)
    come_minus: int = Field(default=0, ge=0)
    go_plus: int = Field(default=0, ge=0)
    go_minus: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class RoundingConfig(BaseModel):
    mode: RoundingMode = RoundingMode.NONE
    interval: int = Field(default=1, ge=1, le=MINUTES_PER_DAY)

    model_config = ConfigDict(frozen=True)


class BreakRule(BaseModel):
    """One configured break of a day plan.

    Fixed-window rules need both ``start_minute`` and ``end_minute``; minimum
    rules need ``threshold_minutes`` (presence after which the break is due).
    Variable rules may carry a threshold as well.
    """

    break_type: BreakType
    duration: int = Field(ge=0, le=MINUTES_PER_DAY)
    start_minute: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    end_minute: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    threshold_minutes: int | None = Field(default=None, ge=0)
    is_paid: bool = False
    auto_deduct: bool = True
    proportional: bool = True

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "BreakRule":
        if self.break_type == BreakType.FIXED:
            if self.start_minute is None or self.end_minute is None:
                raise ValueError("Fixed-window breaks require start_minute and end_minute.")
            if self.end_minute <= self.start_minute:
                raise ValueError("end_minute must be greater than start_minute.")
        if self.break_type == BreakType.MINIMUM and self.threshold_minutes is None:
            raise ValueError("Minimum breaks require threshold_minutes.")
        return self


class ShiftWindow(BaseModel):
    arrive_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    arrive_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    depart_from: int | None = Field(default=None, ge=0, le=2 * MINUTES_PER_DAY)
    depart_to: int | None = Field(default=None, ge=0, le=2 * MINUTES_PER_DAY)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_pairs(self) -> "ShiftWindow":
        if (self.arrive_from is None) != (self.arrive_to is None):
            raise ValueError("arrive_from and arrive_to must be provided together.")
        if (self.depart_from is None) != (self.depart_to is None):
            raise ValueError("depart_from and depart_to must be provided together.")
        return self

    @property
    def has_arrival(self) -> bool:
        return self.arrive_from is not None

    @property
    def has_departure(self) -> bool:
        return self.depart_from is not None


class DayPlan(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    target_minutes: int = Field(default=0, ge=0, le=MINUTES_PER_DAY)
    alternate_target_minutes: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    use_employee_target: bool = False

    come_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    come_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    go_from: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    go_to: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    variable_work_time: bool = False
    core_start: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    core_end: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)

    tolerance: ToleranceConfig = Field(default_factory=ToleranceConfig)
    rounding_come: RoundingConfig | None = None
    rounding_go: RoundingConfig | None = None
    round_all_bookings: bool = False

    breaks: list[BreakRule] = Field(default_factory=list)
    max_net_minutes: int | None = Field(default=None, ge=0)
    min_work_minutes: int | None = Field(default=None, ge=0)
    no_booking_behavior: NoBookingBehavior = NoBookingBehavior.ERROR
    holiday_credits: dict[int, int] = Field(default_factory=dict)
    shift_window: ShiftWindow | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_windows(self) -> "DayPlan":
        if self.come_from is not None and self.come_to is not None and self.come_to < self.come_from:
            raise ValueError("come_to must not be earlier than come_from.")
        if self.go_from is not None and self.go_to is not None and self.go_to < self.go_from:
            raise ValueError("go_to must not be earlier than go_from.")
        for category, minutes in self.holiday_credits.items():
            if minutes < 0:
                raise ValueError(f"holiday credit for category {category} must not be negative.")
        return self


class HolidayInfo(BaseModel):
    name: str | None = None
    category: int = Field(default=1, ge=1)

    model_config = ConfigDict(frozen=True)


class AbsenceInfo(BaseModel):
    absence_code: str | None = None
    credit_minutes: int | None = Field(default=None, ge=0)
    overrides_holiday: bool = False

    model_config = ConfigDict(frozen=True)


class DayContext(BaseModel):
    employee_id: int
    day_date: date
    day_plan: DayPlan | None = None
    alternative_plans: list[DayPlan] = Field(default_factory=list)
    employee_target_minutes: int | None = Field(default=None, ge=0, le=MINUTES_PER_DAY)
    holiday: HolidayInfo | None = None
    absence: AbsenceInfo | None = None

    model_config = ConfigDict(frozen=True)


class DailyResult(BaseModel):
    employee_id: int
    day_date: date
    status: DayStatus
    day_plan_code: str | None = None
    gross_minutes: int = 0
    net_minutes: int = 0
    target_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    break_minutes: int = 0
    capped_minutes: int = 0
    first_come: int | None = None
    last_go: int | None = None
    booking_count: int = 0
    has_error: bool = False
    errors: list[CalcCode] = Field(default_factory=list)
    warnings: list[CalcCode] = Field(default_factory=list)


class MonthlyEvaluationRules(BaseModel):
    credit_type: CreditType = CreditType.NO_EVALUATION
    monthly_cap: int | None = Field(default=None, ge=0)
    flextime_threshold: int | None = Field(default=None, ge=0)
    upper_annual_cap: int | None = None
    # Magnitude of the negative floor; the balance never drops below -abs(value).
    lower_annual_cap: int | None = None

    model_config = ConfigDict(frozen=True)


class AbsenceSummary(BaseModel):
    vacation_days: Decimal = Decimal("0")
    sick_days: int = Field(default=0, ge=0)
    other_absence_days: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class MonthlyResult(BaseModel):
    employee_id: int
    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)

    total_gross_minutes: int = 0
    total_net_minutes: int = 0
    total_target_minutes: int = 0
    total_overtime_minutes: int = 0
    total_undertime_minutes: int = 0
    total_break_minutes: int = 0

    flextime_start: int = 0
    flextime_change: int = 0
    flextime_credited: int = 0
    flextime_forfeited: int = 0
    flextime_end: int = 0

    work_days: int = 0
    days_with_errors: int = 0
    vacation_taken: Decimal = Decimal("0")
    sick_days: int = 0
    other_absence_days: int = 0

    warnings: list[CalcCode] = Field(default_factory=list)
    closed: bool = False


class EngineConfig(BaseModel):
    closed_month_policy: ClosedMonthPolicy = ClosedMonthPolicy.SKIP
    count_trip_as_work: bool = True

    model_config = ConfigDict(frozen=True)
