"""Payroll calculation engine."""

from attendance_payroll.calculators.arrears import ArrearsCalculator
from attendance_payroll.calculators.engine import (
    CalculationResult,
    PayrollEngine,
    PayrollSnapshot,
    SalaryStructureNotConfiguredError,
)
from attendance_payroll.calculators.line_builder import LineItemBuilder
from attendance_payroll.calculators.loans import LoanAmortizationTracker
from attendance_payroll.calculators.proration import SalaryProrationEngine

__all__ = [
    "ArrearsCalculator",
    "CalculationResult",
    "LineItemBuilder",
    "LoanAmortizationTracker",
    "PayrollEngine",
    "PayrollSnapshot",
    "SalaryProrationEngine",
    "SalaryStructureNotConfiguredError",
]
