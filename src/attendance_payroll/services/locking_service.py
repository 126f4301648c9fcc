"""Salary lock service: finalizes monthly payroll snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.engine import (
    PayrollEngine,
    PayrollSnapshot,
    SalaryStructureNotConfiguredError,
)
from attendance_payroll.calculators.types import EmployeeInfo, PayrollAdjustment, SalaryStructure
from attendance_payroll.database import insert_for
from attendance_payroll.models import MonthlySalaryRecord
from attendance_payroll.models.salary import PERIOD_KEY
from attendance_payroll.periods import month_name
from attendance_payroll.services.adjustment_service import AdjustmentService
from attendance_payroll.services.state_machine import SalaryLockStateMachine, SalaryRecordStatus

if TYPE_CHECKING:
    from attendance_payroll.attendance.summary import MonthlyAttendanceSummary

logger = logging.getLogger(__name__)


class UnlockNotConfirmedError(Exception):
    """Raised when unlock is requested without explicit confirmation."""

    def __init__(self, employee_codes: list[str]):
        self.employee_codes = employee_codes
        super().__init__(
            f"Unlocking {', '.join(employee_codes)} re-enables edits and must be confirmed"
        )


@dataclass
class LockRequest:
    """Inputs for locking one employee's month."""

    employee: EmployeeInfo
    structure: SalaryStructure | None
    attendance: MonthlyAttendanceSummary | None = None
    # None means: use the stored adjustment for the month
    adjustment: PayrollAdjustment | None = None


@dataclass
class BulkLockResult:
    """Per-employee outcome of a bulk lock or unlock."""

    locked: list[str] = field(default_factory=list)
    unlocked: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)  # Already in the target state
    skipped: dict[str, str] = field(default_factory=dict)  # employee_code -> reason
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def locked_count(self) -> int:
        return len(self.locked)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped) + len(self.errors)

    @property
    def success(self) -> bool:
        return not self.skipped and not self.errors

    def summary(self) -> str:
        parts = []
        if self.locked:
            parts.append(f"{len(self.locked)} locked")
        if self.unlocked:
            parts.append(f"{len(self.unlocked)} unlocked")
        if self.unchanged:
            parts.append(f"{len(self.unchanged)} unchanged")
        if self.skipped_count:
            parts.append(f"{self.skipped_count} skipped")
        return ", ".join(parts) or "nothing to do"


class PayrollLockService:
    """Locks and unlocks monthly salary records.

    Lock recomputes the snapshot and upserts the record keyed by
    (employee_code, month, year) in one INSERT ... ON CONFLICT statement.
    The conflict update only fires while the stored record is not Locked,
    so a Locked snapshot is never overwritten in place. Unlock only flips
    the status back to Open; the snapshot stays until the next lock.
    """

    def __init__(self, session: AsyncSession, engine: PayrollEngine | None = None):
        self.session = session
        self.engine = engine or PayrollEngine()
        self.adjustments = AdjustmentService(session)

    async def get_record(
        self, employee_code: str, month: str | int, year: int
    ) -> MonthlySalaryRecord | None:
        result = await self.session.execute(
            select(MonthlySalaryRecord)
            .where(
                MonthlySalaryRecord.employee_code == employee_code,
                MonthlySalaryRecord.month == month_name(month),
                MonthlySalaryRecord.year == year,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_records(
        self,
        month: str | int,
        year: int,
        employee_codes: Iterable[str] | None = None,
    ) -> dict[str, MonthlySalaryRecord]:
        query = (
            select(MonthlySalaryRecord)
            .where(
                MonthlySalaryRecord.month == month_name(month),
                MonthlySalaryRecord.year == year,
            )
            .execution_options(populate_existing=True)
        )
        if employee_codes is not None:
            query = query.where(MonthlySalaryRecord.employee_code.in_(list(employee_codes)))
        result = await self.session.execute(query)
        return {record.employee_code: record for record in result.scalars()}

    async def lock(
        self,
        request: LockRequest,
        month: str | int,
        year: int,
    ) -> MonthlySalaryRecord:
        """Compute the snapshot and store it with status Locked.

        Re-locking a Locked record returns it unchanged. Raises
        SalaryStructureNotConfiguredError rather than locking a zero-pay
        record.
        """
        code = request.employee.employee_code
        name = month_name(month)
        existing = await self.get_record(code, name, year)
        current = existing.status if existing else None
        if SalaryLockStateMachine.is_noop(current, SalaryRecordStatus.LOCKED):
            logger.info("Salary for %s (%s %s) is already locked", code, name, year)
            return existing
        SalaryLockStateMachine.validate_transition(current, SalaryRecordStatus.LOCKED)

        adjustment = request.adjustment
        if adjustment is None:
            adjustment = await self.adjustments.get_adjustment(code, name, year)

        snapshot = self.engine.calculate_or_raise(
            request.employee, request.structure, request.attendance, adjustment, name, year
        )
        await self._upsert_locked([snapshot])
        logger.info(
            "Locked salary for %s (%s %s), net pay %s", code, name, year, snapshot.net_pay
        )
        return await self.get_record(code, name, year)

    async def unlock(
        self,
        employee_code: str,
        month: str | int,
        year: int,
        *,
        confirmed: bool = False,
    ) -> MonthlySalaryRecord | None:
        """Re-open a Locked record for editing. Unlocking an Open record is a no-op."""
        if not confirmed:
            raise UnlockNotConfirmedError([employee_code])

        name = month_name(month)
        existing = await self.get_record(employee_code, name, year)
        current = existing.status if existing else None
        if SalaryLockStateMachine.is_noop(current, SalaryRecordStatus.OPEN):
            return existing
        SalaryLockStateMachine.validate_transition(current, SalaryRecordStatus.OPEN)

        await self._set_open([employee_code], name, year)
        logger.info("Unlocked salary for %s (%s %s)", employee_code, name, year)
        return await self.get_record(employee_code, name, year)

    async def bulk_lock(
        self,
        requests: Iterable[LockRequest],
        month: str | int,
        year: int,
    ) -> BulkLockResult:
        """Lock many employees; one employee's failure never aborts the batch.

        Requests are de-duplicated by employee code (the last one wins).
        Each snapshot is upserted inside its own SAVEPOINT, so a failed
        write is reported in ``errors`` without undoing the others.
        """
        name = month_name(month)
        unique: dict[str, LockRequest] = {}
        for request in requests:
            unique[request.employee.employee_code] = request
        requests = list(unique.values())
        codes = list(unique)
        records = await self.get_records(name, year, codes)
        stored = await self.adjustments.get_adjustments(name, year, codes)

        result = BulkLockResult()
        snapshots: list[PayrollSnapshot] = []
        for request in requests:
            code = request.employee.employee_code
            record = records.get(code)
            if record is not None and record.is_locked:
                result.unchanged.append(code)
                continue
            adjustment = request.adjustment or stored.get(code)
            try:
                snapshots.append(
                    self.engine.calculate_or_raise(
                        request.employee,
                        request.structure,
                        request.attendance,
                        adjustment,
                        name,
                        year,
                    )
                )
            except SalaryStructureNotConfiguredError as e:
                logger.warning("Skipping %s in bulk lock: %s", code, e)
                result.skipped[code] = str(e)
            except Exception as e:
                logger.exception("Payroll calculation failed for %s (%s %s)", code, name, year)
                result.errors[code] = str(e)

        for snapshot in snapshots:
            code = snapshot.employee_code
            try:
                async with self.session.begin_nested():
                    await self._upsert_locked([snapshot])
            except SQLAlchemyError as e:
                logger.exception("Storing locked salary failed for %s (%s %s)", code, name, year)
                result.errors[code] = str(e)
            else:
                result.locked.append(code)

        logger.info("Bulk lock %s %s: %s", name, year, result.summary())
        return result

    async def bulk_unlock(
        self,
        employee_codes: Iterable[str],
        month: str | int,
        year: int,
        *,
        confirmed: bool = False,
    ) -> BulkLockResult:
        """Re-open many records with one batched status update."""
        codes = list(employee_codes)
        if not confirmed:
            raise UnlockNotConfirmedError(codes)

        name = month_name(month)
        records = await self.get_records(name, year, codes)
        result = BulkLockResult()
        for code in codes:
            record = records.get(code)
            if record is not None and record.is_locked:
                result.unlocked.append(code)
            else:
                result.unchanged.append(code)

        if result.unlocked:
            await self._set_open(result.unlocked, name, year)

        logger.info("Bulk unlock %s %s: %s", name, year, result.summary())
        return result

    async def _upsert_locked(self, snapshots: list[PayrollSnapshot]) -> None:
        rows: list[dict[str, Any]] = [
            {
                "employee_code": s.employee_code,
                "employee_name": s.employee_name,
                "month": s.month,
                "year": s.year,
                "status": SalaryRecordStatus.LOCKED.value,
                "salary_data": s.to_dict(),
                "net_pay": s.net_pay,
            }
            for s in snapshots
        ]
        stmt = insert_for(self.session, MonthlySalaryRecord).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(PERIOD_KEY),
            set_={
                "employee_name": stmt.excluded.employee_name,
                "status": stmt.excluded.status,
                "salary_data": stmt.excluded.salary_data,
                "net_pay": stmt.excluded.net_pay,
                "updated_at": func.now(),
            },
            where=MonthlySalaryRecord.__table__.c.status != SalaryRecordStatus.LOCKED.value,
        )
        await self.session.execute(stmt)

    async def _set_open(self, employee_codes: list[str], month: str, year: int) -> None:
        await self.session.execute(
            update(MonthlySalaryRecord)
            .where(
                MonthlySalaryRecord.employee_code.in_(employee_codes),
                MonthlySalaryRecord.month == month,
                MonthlySalaryRecord.year == year,
                MonthlySalaryRecord.status == SalaryRecordStatus.LOCKED.value,
            )
            .values(status=SalaryRecordStatus.OPEN.value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
