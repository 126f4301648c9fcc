"""Payslips and payroll dashboard totals read from locked snapshots.

Nothing here recomputes pay: every figure comes from the ``salary_data``
frozen at lock time, so later structure changes never alter a payslip.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import ZERO, to_decimal
from attendance_payroll.models import MonthlySalaryRecord
from attendance_payroll.periods import month_end, month_name, month_start
from attendance_payroll.services.state_machine import SalaryRecordStatus

# Snapshot adjustment fields shown as extra deduction lines, in display order
ADJUSTMENT_LINES = (
    ("other_deduction", "Other Deductions"),
    ("tds", "TDS"),
    ("advance", "Advance"),
)


class PayslipNotAvailableError(Exception):
    """Raised when a payslip is requested for a record that is not Locked."""

    def __init__(self, employee_code: str, month: str, year: int):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        super().__init__(f"No locked salary for {employee_code} ({month} {year})")


@dataclass(frozen=True)
class PayslipLine:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class Payslip:
    """Printable view of one locked salary record."""

    employee_code: str
    employee_name: str
    designation: str | None
    department: str | None
    pay_period_start: date
    pay_period_end: date
    earnings: tuple[PayslipLine, ...]
    deductions: tuple[PayslipLine, ...]
    total_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    ctc: Decimal
    employer_contribution: Decimal
    working_days: int
    paid_days: Decimal
    lop_days: Decimal


@dataclass
class PayrollSummary:
    """Totals over the Locked records of a month."""

    processed: int = 0
    total_payroll_cost: Decimal = ZERO  # Gross with arrears
    total_deductions: Decimal = ZERO
    total_net_pay: Decimal = ZERO
    total_employer_contribution: Decimal = ZERO
    total_pf: Decimal = ZERO
    total_esic: Decimal = ZERO
    total_advance: Decimal = ZERO
    employer_components: dict[str, Decimal] = field(default_factory=dict)


def _lines(entries: Iterable[dict[str, Any]] | None) -> list[PayslipLine]:
    return [
        PayslipLine(name=entry.get("name", ""), amount=to_decimal(entry.get("earned")))
        for entry in entries or []
    ]


def build_payslip(record: MonthlySalaryRecord) -> Payslip:
    """Payslip for a Locked record, read entirely from its snapshot."""
    data = record.salary_data or {}
    if record.status != SalaryRecordStatus.LOCKED.value or not data:
        raise PayslipNotAvailableError(record.employee_code, record.month, record.year)

    earnings = _lines(data.get("earnings"))
    total_arrears = to_decimal(data.get("total_arrears"))
    if total_arrears > 0 and not any(line.name == "Arrears" for line in earnings):
        earnings.append(PayslipLine("Arrears", total_arrears))

    deductions = _lines(data.get("deductions"))
    for key, label in ADJUSTMENT_LINES:
        amount = to_decimal(data.get(key))
        if amount > 0:
            deductions.append(PayslipLine(label, amount))

    days = int(data.get("days_in_month") or 0)
    paid_days = to_decimal(data.get("paid_days"))

    return Payslip(
        employee_code=record.employee_code,
        employee_name=record.employee_name or data.get("employee_name", ""),
        designation=data.get("designation"),
        department=data.get("department"),
        pay_period_start=month_start(record.month, record.year),
        pay_period_end=month_end(record.month, record.year),
        earnings=tuple(earnings),
        deductions=tuple(deductions),
        total_earnings=to_decimal(data.get("gross_with_arrears")),
        total_deductions=to_decimal(data.get("total_deduction")),
        net_pay=to_decimal(data.get("net_pay")),
        ctc=to_decimal(data.get("earned_ctc")),
        employer_contribution=to_decimal(data.get("employer_contribution")),
        working_days=days,
        paid_days=paid_days,
        lop_days=Decimal(days) - paid_days,
    )


def summarize_payroll(records: Iterable[MonthlySalaryRecord]) -> PayrollSummary:
    """Dashboard totals; Open records are ignored."""
    summary = PayrollSummary()
    for record in records:
        if record.status != SalaryRecordStatus.LOCKED.value:
            continue
        summary.processed += 1
        data = record.salary_data or {}
        summary.total_payroll_cost += to_decimal(data.get("gross_with_arrears"))
        summary.total_deductions += to_decimal(data.get("total_deduction"))
        summary.total_net_pay += to_decimal(data.get("net_pay"))
        summary.total_employer_contribution += to_decimal(data.get("employer_contribution"))
        summary.total_pf += to_decimal(data.get("epf"))
        summary.total_esic += to_decimal(data.get("esic"))
        summary.total_advance += to_decimal(data.get("advance"))
        for entry in data.get("employer_additional") or []:
            name = entry.get("name", "")
            summary.employer_components[name] = summary.employer_components.get(
                name, ZERO
            ) + to_decimal(entry.get("earned"))
    return summary


class PayslipService:
    """Loads Locked records for payslips and dashboard totals."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def locked_records(
        self,
        month: str | int,
        year: int,
        department: str | None = None,
    ) -> list[MonthlySalaryRecord]:
        result = await self.session.execute(
            select(MonthlySalaryRecord)
            .where(
                MonthlySalaryRecord.month == month_name(month),
                MonthlySalaryRecord.year == year,
                MonthlySalaryRecord.status == SalaryRecordStatus.LOCKED.value,
            )
            .order_by(MonthlySalaryRecord.employee_code)
            .execution_options(populate_existing=True)
        )
        records = list(result.scalars())
        if department is not None:
            records = [r for r in records if (r.salary_data or {}).get("department") == department]
        return records

    async def payslips(
        self, month: str | int, year: int, department: str | None = None
    ) -> list[Payslip]:
        return [build_payslip(r) for r in await self.locked_records(month, year, department)]

    async def summary(self, month: str | int, year: int) -> PayrollSummary:
        return summarize_payroll(await self.locked_records(month, year))
