from __future__ import annotations

import unittest

from pydantic import ValidationError

from timecalc.models import RoundingMode
from timecalc.schemas import DayPlan, RoundingConfig, ShiftWindow, ToleranceConfig


class DayPlanValidationTests(unittest.TestCase):
    def test_come_window_must_be_ordered(self) -> None:
        with self.assertRaises(ValidationError):
            DayPlan(code="BAD", come_from=540, come_to=480)

    def test_negative_holiday_credit_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            DayPlan(code="BAD", holiday_credits={1: -1})

    def test_zero_minute_is_distinct_from_unset(self) -> None:
        plan = DayPlan(code="NIGHT", come_from=0)

        self.assertEqual(plan.come_from, 0)
        self.assertIsNone(plan.come_to)

    def test_plans_are_immutable(self) -> None:
        plan = DayPlan(code="STD")
        with self.assertRaises(ValidationError):
            plan.target_minutes = 10

    def test_shift_window_bounds_come_in_pairs(self) -> None:
        with self.assertRaises(ValidationError):
            ShiftWindow(arrive_from=300)
        self.assertTrue(ShiftWindow(arrive_from=300, arrive_to=360).has_arrival)
        self.assertFalse(ShiftWindow(arrive_from=300, arrive_to=360).has_departure)

    def test_rounding_interval_must_be_positive(self) -> None:
        with self.assertRaises(ValidationError):
            RoundingConfig(mode=RoundingMode.UP, interval=0)

    def test_tolerance_must_not_be_negative(self) -> None:
        with self.assertRaises(ValidationError):
            ToleranceConfig(come_plus=-5)


if __name__ == "__main__":
    unittest.main()
