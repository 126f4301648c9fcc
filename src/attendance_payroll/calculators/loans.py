"""Loan outstanding balance, auto-deduction proposals and statements.

The outstanding balance is never stored. It is derived from the advance
recovered in every Locked salary record dated strictly before the month
being prepared.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from attendance_payroll.calculators.types import ZERO, LedgerEntry, to_decimal
from attendance_payroll.periods import is_before, month_end, month_name
from attendance_payroll.services.state_machine import SalaryRecordStatus


class LoanStatus(str, Enum):
    """Loan record status values."""

    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    CLOSED = "Closed"
    REJECTED = "Rejected"


# Loans that are still being repaid through salary
REPAYABLE_STATUSES = frozenset({LoanStatus.APPROVED.value, LoanStatus.ACTIVE.value})

# Loans that were actually paid out and belong on a statement
DISBURSED_STATUSES = REPAYABLE_STATUSES | {LoanStatus.CLOSED.value}


@dataclass(frozen=True)
class LoanRecord:
    """A staff loan or salary advance."""

    employee_code: str
    total_amount: Decimal
    installment_amount: Decimal = ZERO
    repayment_start_date: date | None = None
    status: str = LoanStatus.APPROVED.value
    disbursement_date: date | None = None
    loan_type: str = "Loan"

    @property
    def deduction_from(self) -> date | None:
        """First month repayments are due (falls back to disbursement)."""
        return self.repayment_start_date or self.disbursement_date

    @property
    def is_repayable(self) -> bool:
        return self.status in REPAYABLE_STATUSES


@dataclass(frozen=True)
class LockedRepayment:
    """Advance recovered by one Locked monthly salary record."""

    employee_code: str
    month: str
    year: int
    advance: Decimal


@dataclass(frozen=True)
class LoanPosition:
    """Outstanding balance of a loan as of a target month."""

    employee_code: str
    total_amount: Decimal
    total_repaid: Decimal
    outstanding: Decimal
    proposed_deduction: Decimal | None = None


@dataclass(frozen=True)
class InstallmentPlan:
    """Regular installments plus a final balancing installment."""

    installments: int
    installment_amount: Decimal
    last_installment: Decimal


def installment_plan(total_amount: Decimal | int, installment_amount: Decimal | int) -> InstallmentPlan | None:
    """Split a loan into installments; ``None`` if the installment is not positive."""
    total = to_decimal(total_amount)
    installment = to_decimal(installment_amount)
    if installment <= 0 or total <= 0:
        return None
    count = math.ceil(total / installment)
    last = total - installment * (count - 1)
    return InstallmentPlan(installments=count, installment_amount=installment, last_installment=last)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def repayments_from_records(records: Iterable[Any]) -> list[LockedRepayment]:
    """Extract positive advance recoveries from Locked salary records.

    Accepts ORM rows or plain mappings with ``employee_code``, ``month``,
    ``year``, ``status`` and ``salary_data``. Open records are ignored.
    """
    repayments: list[LockedRepayment] = []
    for record in records:
        if _field(record, "status") != SalaryRecordStatus.LOCKED.value:
            continue
        salary_data = _field(record, "salary_data") or {}
        advance = to_decimal(salary_data.get("advance"))
        if advance > 0:
            repayments.append(
                LockedRepayment(
                    employee_code=_field(record, "employee_code"),
                    month=month_name(_field(record, "month")),
                    year=int(_field(record, "year")),
                    advance=advance,
                )
            )
    return repayments


class LoanAmortizationTracker:
    """Derives loan balances and proposes the month's advance deduction."""

    @staticmethod
    def total_repaid(
        repayments: Iterable[LockedRepayment],
        employee_code: str,
        month: str | int,
        year: int,
    ) -> Decimal:
        """Advance recovered in Locked months strictly before (month, year)."""
        total = ZERO
        for repayment in repayments:
            if repayment.employee_code != employee_code:
                continue
            if is_before(repayment.month, repayment.year, month, year):
                total += repayment.advance
        return total

    @staticmethod
    def is_due(loan: LoanRecord, month: str | int, year: int) -> bool:
        """True when (month, year) is on or after the repayment start month."""
        start = loan.deduction_from
        if start is None:
            return False
        return not is_before(month, year, start.month, start.year)

    def position(
        self,
        loan: LoanRecord,
        repayments: Iterable[LockedRepayment],
        month: str | int,
        year: int,
        *,
        has_adjustment: bool = False,
    ) -> LoanPosition:
        repaid = self.total_repaid(repayments, loan.employee_code, month, year)
        outstanding = max(ZERO, loan.total_amount - repaid)

        proposed = None
        # Never overwrite a manually entered adjustment
        if not has_adjustment and outstanding > 0 and self.is_due(loan, month, year):
            deduction = min(outstanding, loan.installment_amount)
            if deduction > 0:
                proposed = deduction

        return LoanPosition(
            employee_code=loan.employee_code,
            total_amount=loan.total_amount,
            total_repaid=repaid,
            outstanding=outstanding,
            proposed_deduction=proposed,
        )

    @staticmethod
    def active_loans(loans: Iterable[LoanRecord]) -> dict[str, LoanRecord]:
        """One repayable loan per employee; the last one listed wins."""
        active: dict[str, LoanRecord] = {}
        for loan in loans:
            if loan.is_repayable:
                active[loan.employee_code] = loan
        return active

    def positions(
        self,
        loans: Iterable[LoanRecord],
        repayments: Iterable[LockedRepayment],
        month: str | int,
        year: int,
        existing_adjustments: Iterable[str] = (),
    ) -> dict[str, LoanPosition]:
        """Loan position for every employee with a repayable loan."""
        history = list(repayments)
        adjusted = set(existing_adjustments)
        return {
            code: self.position(loan, history, month, year, has_adjustment=code in adjusted)
            for code, loan in self.active_loans(loans).items()
        }

    def propose_adjustments(
        self,
        loans: Iterable[LoanRecord],
        repayments: Iterable[LockedRepayment],
        month: str | int,
        year: int,
        existing_adjustments: Iterable[str] = (),
    ) -> dict[str, Decimal]:
        """Proposed ``advance`` per employee code for the target month."""
        return {
            code: position.proposed_deduction
            for code, position in self.positions(
                loans, repayments, month, year, existing_adjustments
            ).items()
            if position.proposed_deduction is not None
        }


def build_loan_statement(
    employee_code: str,
    loans: Iterable[LoanRecord],
    repayments: Iterable[LockedRepayment],
) -> list[LedgerEntry]:
    """Chronological debit/credit ledger with a running balance.

    Disbursements are debits dated at disbursement; salary recoveries are
    credits dated at the last day of their month.
    """
    entries: list[LedgerEntry] = []
    for loan in loans:
        if loan.employee_code != employee_code or loan.status not in DISBURSED_STATUSES:
            continue
        entry_date = loan.disbursement_date or loan.repayment_start_date
        if entry_date is None:
            continue
        entries.append(
            LedgerEntry(
                entry_date=entry_date,
                description=f"Loan Disbursement ({loan.loan_type})",
                entry_type="Debit",
                amount=loan.total_amount,
            )
        )

    for repayment in repayments:
        if repayment.employee_code != employee_code:
            continue
        entries.append(
            LedgerEntry(
                entry_date=month_end(repayment.month, repayment.year),
                description=f"Salary Deduction - {repayment.month} {repayment.year}",
                entry_type="Credit",
                amount=repayment.advance,
            )
        )

    # Stable sort keeps a same-day disbursement ahead of its recovery
    entries.sort(key=lambda e: e.entry_date)

    ledger: list[LedgerEntry] = []
    balance = ZERO
    for entry in entries:
        balance = balance + entry.amount if entry.entry_type == "Debit" else balance - entry.amount
        ledger.append(replace(entry, balance=balance))
    return ledger

