"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from attendance_payroll.calculators.arrears import ArrearsCalculator
from attendance_payroll.calculators.line_builder import LineItemBuilder
from attendance_payroll.calculators.proration import SalaryProrationEngine
from attendance_payroll.calculators.types import (
    ZERO,
    EarnedLine,
    EmployeeInfo,
    PayrollAdjustment,
    SalaryStructure,
    to_decimal,
)
from attendance_payroll.config import get_settings
from attendance_payroll.periods import days_in_month, month_name

if TYPE_CHECKING:
    from attendance_payroll.attendance.summary import MonthlyAttendanceSummary

DAILY_GROSS_PRECISION = Decimal("0.01")


class SalaryStructureNotConfiguredError(Exception):
    """Raised when payroll is requested for an employee without a salary structure."""

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(f"Salary structure not configured for employee {employee_code}")


@dataclass(frozen=True)
class PayrollSnapshot:
    """Computed payroll for one employee-month.

    Produced once per lock and embedded in the salary record as
    ``salary_data``. Every intermediate value is kept so a locked record
    explains itself without recomputation.
    """

    employee_code: str
    employee_name: str
    designation: str | None
    department: str | None
    month: str
    year: int

    days_in_month: int
    paid_days: Decimal
    lop_days: Decimal
    proration_factor: Decimal

    monthly_gross: Decimal
    earnings: tuple[EarnedLine, ...]
    deductions: tuple[EarnedLine, ...]
    employer_additional: tuple[EarnedLine, ...]
    gross_earned: Decimal
    earned_deductions: Decimal
    employer_contribution: Decimal

    # Arrears
    arrear_days: Decimal
    daily_gross: Decimal
    calculated_arrears: Decimal
    manual_arrears: Decimal
    total_arrears: Decimal
    gross_with_arrears: Decimal

    # Adjustments
    other_deduction: Decimal
    tds: Decimal
    advance: Decimal
    total_adjustments: Decimal
    total_deduction: Decimal

    net_pay: Decimal
    earned_ctc: Decimal

    # Named components for summary views
    basic: Decimal
    hra: Decimal
    special: Decimal
    epf: Decimal
    esic: Decimal

    engine_version: str
    inputs_fingerprint: str

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation; amounts become strings."""
        data: dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, tuple):
                data[name] = [line.to_dict() for line in value]
            elif isinstance(value, Decimal):
                data[name] = str(value)
            else:
                data[name] = value
        return data


@dataclass
class CalculationResult:
    """Result of calculating pay for one employee."""

    employee_code: str
    snapshot: PayrollSnapshot | None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.snapshot is not None and len(self.errors) == 0


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Prorate earnings, deductions and employer additions by paid days
    2) Compute day-based arrears and add manual arrears
    3) Add adjustments (other deduction, TDS, advance) to deductions
    4) Net pay = gross with arrears - (earned deductions + adjustments)
    5) Earned CTC = gross with arrears + employer contribution

    A pure function of its inputs: the same structure, attendance summary
    and adjustment always yield an identical snapshot.
    """

    def __init__(self, engine_version: str | None = None):
        self.engine_version = engine_version or get_settings().engine_version
        self.proration = SalaryProrationEngine()
        self.arrears = ArrearsCalculator()

    def calculate(
        self,
        employee: EmployeeInfo,
        structure: SalaryStructure | None,
        attendance: MonthlyAttendanceSummary | None,
        adjustment: PayrollAdjustment | None,
        month: str | int,
        year: int,
    ) -> PayrollSnapshot | None:
        """Compute the month's payroll; ``None`` when no structure is configured."""
        if structure is None:
            return None

        adjustment = adjustment or PayrollAdjustment()
        days = days_in_month(month, year)
        paid_days = to_decimal(attendance.total_paid_days) if attendance else ZERO
        arrear_days = to_decimal(attendance.arrear_days) if attendance else ZERO

        prorated = self.proration.prorate(structure, paid_days, days)
        arrears = self.arrears.calculate(
            structure.monthly_gross, days, arrear_days, adjustment.arrear_amount
        )

        gross_with_arrears = prorated.gross_earned + arrears.total_arrears
        total_adjustments = adjustment.total_deductions
        total_deduction = prorated.total_earned_deductions + total_adjustments
        net_pay = gross_with_arrears - total_deduction

        fingerprint = self.inputs_fingerprint(
            employee, structure, paid_days, arrear_days, adjustment, month, year
        )

        return PayrollSnapshot(
            employee_code=employee.employee_code,
            employee_name=employee.employee_name,
            designation=employee.designation,
            department=employee.department,
            month=month_name(month),
            year=year,
            days_in_month=days,
            paid_days=paid_days,
            lop_days=max(ZERO, Decimal(days) - paid_days),
            proration_factor=prorated.factor,
            monthly_gross=structure.monthly_gross,
            earnings=prorated.earnings,
            deductions=prorated.deductions,
            employer_additional=prorated.employer_additional,
            gross_earned=prorated.gross_earned,
            earned_deductions=prorated.total_earned_deductions,
            employer_contribution=prorated.total_employer_contribution,
            arrear_days=arrear_days,
            daily_gross=arrears.daily_gross.quantize(DAILY_GROSS_PRECISION),
            calculated_arrears=arrears.calculated_arrears,
            manual_arrears=arrears.manual_arrears,
            total_arrears=arrears.total_arrears,
            gross_with_arrears=gross_with_arrears,
            other_deduction=adjustment.other_deduction,
            tds=adjustment.tds,
            advance=adjustment.advance,
            total_adjustments=total_adjustments,
            total_deduction=total_deduction,
            net_pay=net_pay,
            earned_ctc=gross_with_arrears + prorated.total_employer_contribution,
            basic=LineItemBuilder.find_component(prorated.earnings, "basic"),
            hra=LineItemBuilder.find_component(prorated.earnings, "hra"),
            special=LineItemBuilder.find_component(prorated.earnings, "special"),
            epf=LineItemBuilder.find_component(prorated.deductions, "pf", "provident"),
            esic=LineItemBuilder.find_component(prorated.deductions, "esi"),
            engine_version=self.engine_version,
            inputs_fingerprint=fingerprint,
        )

    def calculate_or_raise(
        self,
        employee: EmployeeInfo,
        structure: SalaryStructure | None,
        attendance: MonthlyAttendanceSummary | None,
        adjustment: PayrollAdjustment | None,
        month: str | int,
        year: int,
    ) -> PayrollSnapshot:
        snapshot = self.calculate(employee, structure, attendance, adjustment, month, year)
        if snapshot is None:
            raise SalaryStructureNotConfiguredError(employee.employee_code)
        return snapshot

    def calculate_employee(
        self,
        employee: EmployeeInfo,
        structure: SalaryStructure | None,
        attendance: MonthlyAttendanceSummary | None,
        adjustment: PayrollAdjustment | None,
        month: str | int,
        year: int,
    ) -> CalculationResult:
        """Calculate one employee, reporting problems instead of raising."""
        try:
            snapshot = self.calculate_or_raise(
                employee, structure, attendance, adjustment, month, year
            )
        except SalaryStructureNotConfiguredError as e:
            return CalculationResult(employee.employee_code, None, [str(e)])
        return CalculationResult(employee.employee_code, snapshot)

    def inputs_fingerprint(
        self,
        employee: EmployeeInfo,
        structure: SalaryStructure,
        paid_days: Decimal,
        arrear_days: Decimal,
        adjustment: PayrollAdjustment,
        month: str | int,
        year: int,
    ) -> str:
        """Hash of everything the snapshot depends on, plus the engine version."""
        canonical = {
            "employee": {
                "employee_code": employee.employee_code,
                "employee_name": employee.employee_name,
                "designation": employee.designation,
                "department": employee.department,
            },
            "structure": structure.to_canonical_dict(),
            "attendance": {"paid_days": str(paid_days), "arrear_days": str(arrear_days)},
            "adjustment": adjustment.to_dict(),
            "period": [month_name(month), year],
            "engine_version": self.engine_version,
        }
        return LineItemBuilder.compute_hash(canonical)
