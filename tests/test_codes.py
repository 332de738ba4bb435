from __future__ import annotations

import unittest

from timecalc.codes import CalcCode, Severity, is_error, partition_codes, severity_of


class CodeClassificationTests(unittest.TestCase):
    def test_every_code_has_a_severity(self) -> None:
        for code in CalcCode:
            self.assertIn(severity_of(code), (Severity.ERROR, Severity.WARNING))

    def test_fixed_error_set(self) -> None:
        errors = {code for code in CalcCode if is_error(code)}
        self.assertEqual(
            errors,
            {
                CalcCode.MISSING_COME,
                CalcCode.MISSING_GO,
                CalcCode.UNPAIRED_BOOKING,
                CalcCode.DUPLICATE_IN_TIME,
                CalcCode.BELOW_MIN_WORK_TIME,
                CalcCode.NO_MATCHING_SHIFT,
                CalcCode.NO_BOOKINGS,
                CalcCode.MISSED_CORE_START,
                CalcCode.MISSED_CORE_END,
            },
        )

    def test_partition_dedupes_and_keeps_order(self) -> None:
        errors, warnings = partition_codes(
            [
                CalcCode.LATE_COME,
                CalcCode.MISSING_GO,
                CalcCode.LATE_COME,
                CalcCode.UNPAIRED_BOOKING,
                CalcCode.SHORT_BREAK,
            ]
        )

        self.assertEqual(errors, [CalcCode.MISSING_GO, CalcCode.UNPAIRED_BOOKING])
        self.assertEqual(warnings, [CalcCode.LATE_COME, CalcCode.SHORT_BREAK])


if __name__ == "__main__":
    unittest.main()
