from __future__ import annotations


class CalculationError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class InvalidPeriodError(CalculationError):
    def __init__(self, message: str):
        super().__init__("INVALID_PERIOD", message)


class FutureMonthError(CalculationError):
    def __init__(self, year: int, month: int):
        super().__init__("FUTURE_MONTH", f"cannot calculate future month {year:04d}-{month:02d}")
        self.year = year
        self.month = month


class MonthClosedError(CalculationError):
    def __init__(self, employee_id: int, year: int, month: int):
        super().__init__(
            "MONTH_CLOSED",
            f"month {year:04d}-{month:02d} is closed for employee {employee_id}",
        )
        self.employee_id = employee_id
        self.year = year
        self.month = month
