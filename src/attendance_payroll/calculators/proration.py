"""Paid-day proration of a salary structure."""

from __future__ import annotations

from decimal import Decimal

from attendance_payroll.calculators.line_builder import LineItemBuilder
from attendance_payroll.calculators.types import (
    LineType,
    ProrationResult,
    SalaryStructure,
    to_decimal,
)


class SalaryProrationEngine:
    """Scales every structure line by ``paid_days / days_in_month``.

    Each line is rounded on its own; totals are sums of rounded lines, so a
    total can differ from a single rounding of the monthly gross by up to
    the number of lines.
    """

    @staticmethod
    def proration_factor(paid_days: Decimal | int, days_in_month: int) -> Decimal:
        """Exact factor; 0 for a zero-length month."""
        if not days_in_month:
            return Decimal("0")
        return to_decimal(paid_days) / Decimal(days_in_month)

    def prorate(
        self,
        structure: SalaryStructure | None,
        paid_days: Decimal | int,
        days_in_month: int,
    ) -> ProrationResult | None:
        """Prorate a structure; ``None`` means the employee has no structure."""
        if structure is None:
            return None

        paid = to_decimal(paid_days)
        factor = self.proration_factor(paid, days_in_month)

        def build(line_type: LineType):
            return tuple(
                LineItemBuilder.create_earned_line(line_type, component, factor)
                for component in structure.components(line_type)
            )

        earnings = build(LineType.EARNING)
        deductions = build(LineType.DEDUCTION)
        employer_additional = build(LineType.EMPLOYER_ADDITIONAL)

        return ProrationResult(
            paid_days=paid,
            days_in_month=days_in_month,
            factor=factor,
            earnings=earnings,
            deductions=deductions,
            employer_additional=employer_additional,
            gross_earned=LineItemBuilder.sum_earned(earnings),
            total_earned_deductions=LineItemBuilder.sum_earned(deductions),
            total_employer_contribution=LineItemBuilder.sum_earned(employer_additional),
        )
