"""Monthly payroll adjustments, gated by the salary record lock."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.loans import (
    LoanAmortizationTracker,
    LoanPosition,
    LoanRecord,
    LockedRepayment,
    build_loan_statement,
    repayments_from_records,
)
from attendance_payroll.calculators.types import LedgerEntry, PayrollAdjustment
from attendance_payroll.database import insert_for
from attendance_payroll.models import MonthlySalaryRecord, PayrollAdjustmentRecord
from attendance_payroll.models.salary import PERIOD_KEY
from attendance_payroll.periods import month_name
from attendance_payroll.services.state_machine import SalaryLockStateMachine, SalaryRecordStatus

logger = logging.getLogger(__name__)


def _to_adjustment(row: PayrollAdjustmentRecord) -> PayrollAdjustment:
    return PayrollAdjustment(
        arrear_amount=Decimal(row.arrear_amount),
        other_deduction=Decimal(row.other_deduction),
        tds=Decimal(row.tds),
        advance=Decimal(row.advance),
    )


@dataclass
class MonthPreparation:
    """Adjustments and loan balances for a month being prepared."""

    month: str
    year: int
    adjustments: dict[str, PayrollAdjustment] = field(default_factory=dict)
    proposed: dict[str, Decimal] = field(default_factory=dict)
    loan_positions: dict[str, LoanPosition] = field(default_factory=dict)
    statuses: dict[str, str] = field(default_factory=dict)


class AdjustmentService:
    """Reads and writes per-employee monthly adjustments.

    Writes are rejected with RecordLockedError while the month's salary
    record is Locked; they succeed again once it is unlocked.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_status(self, employee_code: str, month: str | int, year: int) -> str:
        """Status of the month's salary record; Open when none exists yet."""
        result = await self.session.execute(
            select(MonthlySalaryRecord.status).where(
                MonthlySalaryRecord.employee_code == employee_code,
                MonthlySalaryRecord.month == month_name(month),
                MonthlySalaryRecord.year == year,
            )
        )
        return SalaryLockStateMachine.normalize(result.scalar_one_or_none())

    async def get_statuses(self, month: str | int, year: int) -> dict[str, str]:
        result = await self.session.execute(
            select(MonthlySalaryRecord.employee_code, MonthlySalaryRecord.status).where(
                MonthlySalaryRecord.month == month_name(month),
                MonthlySalaryRecord.year == year,
            )
        )
        return {code: status for code, status in result.all()}

    async def get_adjustment(
        self, employee_code: str, month: str | int, year: int
    ) -> PayrollAdjustment | None:
        result = await self.session.execute(
            select(PayrollAdjustmentRecord).where(
                PayrollAdjustmentRecord.employee_code == employee_code,
                PayrollAdjustmentRecord.month == month_name(month),
                PayrollAdjustmentRecord.year == year,
            )
        )
        row = result.scalar_one_or_none()
        return _to_adjustment(row) if row else None

    async def get_adjustments(
        self,
        month: str | int,
        year: int,
        employee_codes: Iterable[str] | None = None,
    ) -> dict[str, PayrollAdjustment]:
        """Effective adjustments for the month.

        For Locked records the adjustment embedded in the snapshot wins over
        the adjustment table, since that is what was actually paid.
        """
        name = month_name(month)
        codes = set(employee_codes) if employee_codes is not None else None
        query = select(PayrollAdjustmentRecord).where(
            PayrollAdjustmentRecord.month == name,
            PayrollAdjustmentRecord.year == year,
        )
        if codes is not None:
            query = query.where(PayrollAdjustmentRecord.employee_code.in_(codes))
        result = await self.session.execute(query)
        adjustments = {row.employee_code: _to_adjustment(row) for row in result.scalars()}

        locked = await self.session.execute(
            select(MonthlySalaryRecord).where(
                MonthlySalaryRecord.month == name,
                MonthlySalaryRecord.year == year,
                MonthlySalaryRecord.status == SalaryRecordStatus.LOCKED.value,
            )
        )
        for record in locked.scalars():
            if codes is not None and record.employee_code not in codes:
                continue
            if record.salary_data:
                adjustments[record.employee_code] = PayrollAdjustment.from_salary_data(
                    record.salary_data
                )
        return adjustments

    async def set_adjustment(
        self,
        employee_code: str,
        month: str | int,
        year: int,
        adjustment: PayrollAdjustment,
    ) -> PayrollAdjustment:
        """Create or replace the month's adjustment."""
        await self._ensure_open(employee_code, month, year)
        for name, value in adjustment.to_dict().items():
            if Decimal(value) < 0:
                raise ValueError(f"{name} cannot be negative")

        values: dict[str, Any] = {
            "employee_code": employee_code,
            "month": month_name(month),
            "year": year,
            "arrear_amount": adjustment.arrear_amount,
            "other_deduction": adjustment.other_deduction,
            "tds": adjustment.tds,
            "advance": adjustment.advance,
        }
        stmt = insert_for(self.session, PayrollAdjustmentRecord).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(PERIOD_KEY),
            set_={
                "arrear_amount": stmt.excluded.arrear_amount,
                "other_deduction": stmt.excluded.other_deduction,
                "tds": stmt.excluded.tds,
                "advance": stmt.excluded.advance,
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)
        return adjustment

    async def update_field(
        self,
        employee_code: str,
        month: str | int,
        year: int,
        field_name: str,
        value: Any,
    ) -> PayrollAdjustment:
        """Edit one adjustment field (arrear_amount, other_deduction, tds, advance)."""
        current = await self.get_adjustment(employee_code, month, year) or PayrollAdjustment()
        updated = current.with_field(field_name, value)
        return await self.set_adjustment(employee_code, month, year, updated)

    async def prepare_month(
        self,
        month: str | int,
        year: int,
        loans: Iterable[LoanRecord],
        *,
        save_proposals: bool = True,
    ) -> MonthPreparation:
        """Load the month's adjustments and propose loan recoveries.

        A recovery is proposed only for employees with no adjustment yet.
        Proposals are written to the adjustment table, so a later lock
        applies them unless the user edits them first. Pass
        ``save_proposals=False`` for a read-only preview.
        """
        name = month_name(month)
        loans = list(loans)
        adjustments = await self.get_adjustments(name, year)
        statuses = await self.get_statuses(name, year)
        history = await self.locked_history({loan.employee_code for loan in loans})

        tracker = LoanAmortizationTracker()
        positions = tracker.positions(loans, history, name, year, existing_adjustments=adjustments)
        proposed = {
            code: position.proposed_deduction
            for code, position in positions.items()
            if position.proposed_deduction is not None
        }

        for code, advance in proposed.items():
            adjustment = PayrollAdjustment(advance=advance)
            adjustments[code] = adjustment
            if save_proposals and SalaryLockStateMachine.can_modify_inputs(statuses.get(code)):
                await self.set_adjustment(code, name, year, adjustment)

        if proposed:
            logger.info(
                "Proposed loan recovery for %d employee(s) in %s %s", len(proposed), name, year
            )

        return MonthPreparation(
            month=name,
            year=year,
            adjustments=adjustments,
            proposed=proposed,
            loan_positions=positions,
            statuses=statuses,
        )

    async def locked_history(
        self, employee_codes: Iterable[str] | None = None
    ) -> list[LockedRepayment]:
        """Advance recovered by every Locked salary record of the employees."""
        query = select(MonthlySalaryRecord).where(
            MonthlySalaryRecord.status == SalaryRecordStatus.LOCKED.value
        )
        if employee_codes is not None:
            query = query.where(MonthlySalaryRecord.employee_code.in_(list(employee_codes)))
        result = await self.session.execute(query)
        return repayments_from_records(result.scalars())

    async def loan_statement(
        self, employee_code: str, loans: Iterable[LoanRecord]
    ) -> list[LedgerEntry]:
        history = await self.locked_history([employee_code])
        return build_loan_statement(employee_code, loans, history)

    async def _ensure_open(self, employee_code: str, month: str | int, year: int) -> None:
        status = await self.get_status(employee_code, month, year)
        if not SalaryLockStateMachine.can_modify_inputs(status):
            logger.warning(
                "Rejected adjustment write for %s (%s %s): record is %s",
                employee_code,
                month_name(month),
                year,
                status,
            )
        SalaryLockStateMachine.ensure_inputs_mutable(status, employee_code, month_name(month), year)
