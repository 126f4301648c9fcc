"""Tests for paid-day proration and arrears."""

from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from attendance_payroll.calculators.arrears import ArrearsCalculator
from attendance_payroll.calculators.proration import SalaryProrationEngine
from attendance_payroll.calculators.types import SalaryComponent, SalaryStructure


class TestSalaryProrationEngine:
    """Test structure proration."""

    def test_partial_month(self, structure):
        result = SalaryProrationEngine().prorate(structure, Decimal("27"), 30)

        assert result.factor == Decimal("0.9")
        assert [line.earned for line in result.earnings] == [
            Decimal("13500"),
            Decimal("6750"),
            Decimal("6750"),
        ]
        assert result.gross_earned == Decimal("27000")
        # ESIC 202.5 rounds half-up per line
        assert result.total_earned_deductions == Decimal("1823")
        assert result.total_employer_contribution == Decimal("2498")

    def test_no_structure(self):
        assert SalaryProrationEngine().prorate(None, 30, 30) is None

    def test_zero_length_month(self, structure):
        result = SalaryProrationEngine().prorate(structure, 10, 0)
        assert result.factor == Decimal("0")
        assert result.gross_earned == Decimal("0")

    def test_zero_paid_days(self, structure):
        result = SalaryProrationEngine().prorate(structure, 0, 30)
        assert result.gross_earned == Decimal("0")
        assert result.total_earned_deductions == Decimal("0")

    @given(
        amounts=st.lists(st.integers(min_value=0, max_value=500_000), min_size=1, max_size=6),
        days=st.sampled_from([28, 29, 30, 31]),
    )
    def test_full_month_pays_structure(self, amounts, days):
        """Paying every day of the month reproduces the structure exactly."""
        structure = SalaryStructure(
            employee_code="EMP001",
            monthly_gross=Decimal(sum(amounts)),
            earnings_breakdown=tuple(
                SalaryComponent(f"C{i}", Decimal(a)) for i, a in enumerate(amounts)
            ),
        )

        result = SalaryProrationEngine().prorate(structure, days, days)

        assert result.gross_earned == structure.monthly_gross

    @given(paid=st.integers(min_value=0, max_value=30))
    def test_earned_never_exceeds_structure(self, paid):
        structure = SalaryStructure(
            "EMP001",
            Decimal("1000"),
            earnings_breakdown=(SalaryComponent("Basic", Decimal("1000")),),
        )
        result = SalaryProrationEngine().prorate(structure, paid, 30)
        assert Decimal("0") <= result.gross_earned <= Decimal("1000")


class TestArrearsCalculator:
    """Test day-based and manual arrears."""

    def test_day_based_arrears(self):
        result = ArrearsCalculator().calculate(Decimal("30000"), 30, Decimal("2"))

        assert result.daily_gross == Decimal("1000")
        assert result.calculated_arrears == Decimal("2000")
        assert result.total_arrears == Decimal("2000")

    def test_manual_arrears_added(self):
        result = ArrearsCalculator().calculate(Decimal("31000"), 31, 1, Decimal("500"))
        assert result.calculated_arrears == Decimal("1000")
        assert result.manual_arrears == Decimal("500")
        assert result.total_arrears == Decimal("1500")

    def test_rounded_to_whole_units(self):
        # 25000 / 30 * 1.5 = 1250 exactly; 25000 / 31 * 1 = 806.45...
        assert ArrearsCalculator().calculate(25000, 30, Decimal("1.5")).calculated_arrears == Decimal("1250")
        assert ArrearsCalculator().calculate(25000, 31, 1).calculated_arrears == Decimal("806")

    def test_zero_length_month(self):
        result = ArrearsCalculator().calculate(30000, 0, 2, 100)
        assert result.daily_gross == Decimal("0")
        assert result.total_arrears == Decimal("100")
