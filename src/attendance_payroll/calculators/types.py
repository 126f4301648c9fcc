"""Type definitions for the payroll calculation pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce stored numbers (int, float, str, None) to Decimal; junk becomes 0."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return ZERO


class LineType(str, Enum):
    """Salary structure breakdown categories."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"
    EMPLOYER_ADDITIONAL = "EMPLOYER_ADDITIONAL"


@dataclass(frozen=True)
class SalaryComponent:
    """One ``{name, amount}`` entry of a salary structure breakdown."""

    name: str
    amount: Decimal


@dataclass(frozen=True)
class SalaryStructure:
    """Monthly salary structure of one employee (immutable proration input)."""

    employee_code: str
    monthly_gross: Decimal
    earnings_breakdown: tuple[SalaryComponent, ...] = ()
    deductions_breakdown: tuple[SalaryComponent, ...] = ()
    employer_additional_breakdown: tuple[SalaryComponent, ...] = ()

    def components(self, line_type: LineType) -> tuple[SalaryComponent, ...]:
        if line_type == LineType.EARNING:
            return self.earnings_breakdown
        if line_type == LineType.DEDUCTION:
            return self.deductions_breakdown
        return self.employer_additional_breakdown

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_code": self.employee_code,
            "monthly_gross": str(self.monthly_gross),
            "earnings": [[c.name, str(c.amount)] for c in self.earnings_breakdown],
            "deductions": [[c.name, str(c.amount)] for c in self.deductions_breakdown],
            "employer_additional": [
                [c.name, str(c.amount)] for c in self.employer_additional_breakdown
            ],
        }


@dataclass(frozen=True)
class EarnedLine:
    """A breakdown entry after proration."""

    line_type: LineType
    name: str
    amount: Decimal  # Structure amount for a full month
    earned: Decimal  # Prorated, rounded to whole units

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "amount": str(self.amount), "earned": str(self.earned)}


@dataclass(frozen=True)
class PayrollAdjustment:
    """User-entered monthly adjustments for one employee."""

    arrear_amount: Decimal = ZERO  # Manual arrears, added to calculated arrears
    other_deduction: Decimal = ZERO
    tds: Decimal = ZERO
    advance: Decimal = ZERO  # Loan/advance recovery

    FIELDS = ("arrear_amount", "other_deduction", "tds", "advance")

    @property
    def total_deductions(self) -> Decimal:
        return self.other_deduction + self.tds + self.advance

    def with_field(self, name: str, value: Any) -> PayrollAdjustment:
        if name not in self.FIELDS:
            raise ValueError(f"Unknown adjustment field: {name}")
        values = {f: getattr(self, f) for f in self.FIELDS}
        values[name] = to_decimal(value)
        return PayrollAdjustment(**values)

    def to_dict(self) -> dict[str, str]:
        return {f: str(getattr(self, f)) for f in self.FIELDS}

    @classmethod
    def from_salary_data(cls, salary_data: Mapping[str, Any]) -> PayrollAdjustment:
        """Recover the adjustment that produced a stored snapshot.

        Older snapshots stored the manual arrears as ``manualArrears`` or
        ``arrearAmount``.
        """
        manual = salary_data.get("manual_arrears")
        if manual is None:
            manual = salary_data.get("manualArrears", salary_data.get("arrearAmount"))
        return cls(
            arrear_amount=to_decimal(manual),
            other_deduction=to_decimal(
                salary_data.get("other_deduction", salary_data.get("otherDeduction"))
            ),
            tds=to_decimal(salary_data.get("tds")),
            advance=to_decimal(salary_data.get("advance")),
        )


@dataclass(frozen=True)
class EmployeeInfo:
    """Employee master fields carried into the snapshot."""

    employee_code: str
    employee_name: str = ""
    designation: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class ProrationResult:
    """Salary structure scaled by paid days."""

    paid_days: Decimal
    days_in_month: int
    factor: Decimal
    earnings: tuple[EarnedLine, ...] = ()
    deductions: tuple[EarnedLine, ...] = ()
    employer_additional: tuple[EarnedLine, ...] = ()
    gross_earned: Decimal = ZERO
    total_earned_deductions: Decimal = ZERO
    total_employer_contribution: Decimal = ZERO


@dataclass(frozen=True)
class ArrearsResult:
    """Day-based plus manually adjusted arrears."""

    daily_gross: Decimal
    arrear_days: Decimal
    calculated_arrears: Decimal
    manual_arrears: Decimal
    total_arrears: Decimal


@dataclass(frozen=True)
class LedgerEntry:
    """One line of a loan statement."""

    entry_date: date
    description: str
    entry_type: str  # 'Debit' (disbursement) or 'Credit' (salary deduction)
    amount: Decimal
    balance: Decimal = ZERO
