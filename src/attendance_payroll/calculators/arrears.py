"""Day-based and manual arrears."""

from __future__ import annotations

from decimal import Decimal

from attendance_payroll.calculators.line_builder import LineItemBuilder
from attendance_payroll.calculators.types import ArrearsResult, to_decimal


class ArrearsCalculator:
    """Retroactive pay for previously unpaid days.

    ``daily_gross`` is kept exact; only the calculated arrears are rounded.
    """

    @staticmethod
    def daily_gross(monthly_gross: Decimal | int, days_in_month: int) -> Decimal:
        if not days_in_month:
            return Decimal("0")
        return to_decimal(monthly_gross) / Decimal(days_in_month)

    def calculate(
        self,
        monthly_gross: Decimal | int,
        days_in_month: int,
        arrear_days: Decimal | int,
        manual_arrears: Decimal | int = 0,
    ) -> ArrearsResult:
        daily = self.daily_gross(monthly_gross, days_in_month)
        days = to_decimal(arrear_days)
        manual = to_decimal(manual_arrears)
        calculated = LineItemBuilder.round_amount(daily * days)
        return ArrearsResult(
            daily_gross=daily,
            arrear_days=days,
            calculated_arrears=calculated,
            manual_arrears=manual,
            total_arrears=calculated + manual,
        )
