"""Integration tests for the lock, adjustment and payslip flow on a real database."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from attendance_payroll.attendance.compounding import DuplicateCompoundingRuleError
from attendance_payroll.attendance.summary import build_summary
from attendance_payroll.attendance.types import CompoundingRule, ThresholdRuleSet
from attendance_payroll.calculators.engine import PayrollEngine, SalaryStructureNotConfiguredError
from attendance_payroll.calculators.loans import LoanRecord
from attendance_payroll.calculators.types import EmployeeInfo, PayrollAdjustment
from attendance_payroll.models import AttendanceRuleSetRecord
from attendance_payroll.services.adjustment_service import AdjustmentService
from attendance_payroll.services.locking_service import (
    LockRequest,
    PayrollLockService,
    UnlockNotConfirmedError,
)
from attendance_payroll.services.payslip_service import PayslipService
from attendance_payroll.services.rules_repository import RuleSetRepository
from attendance_payroll.services.state_machine import RecordLockedError


@pytest.fixture
def lock_service(session):
    return PayrollLockService(session, PayrollEngine("1.0.0"))


@pytest.fixture
def adjustments(session):
    return AdjustmentService(session)


@pytest.fixture
def request_(employee, structure, attendance):
    return LockRequest(employee=employee, structure=structure, attendance=attendance)


def _other_employee(code: str, structure, month: str = "June"):
    return LockRequest(
        employee=EmployeeInfo(code, f"Employee {code}", department="Sales"),
        structure=replace(structure, employee_code=code) if structure else None,
        attendance=build_summary(code, month, 2025, present=30),
    )


class TestLock:
    """Test locking a single employee-month."""

    async def test_lock_stores_snapshot(self, lock_service, request_):
        request_.adjustment = PayrollAdjustment(tds=Decimal("200"))

        record = await lock_service.lock(request_, "June", 2025)

        assert record.status == "Locked"
        assert record.is_locked is True
        assert record.net_pay == Decimal("26977")
        assert record.salary_data["net_pay"] == "26977"
        assert record.salary_data["tds"] == "200"
        assert record.employee_name == "Asha Verma"

    async def test_lock_uses_stored_adjustment(self, lock_service, adjustments, request_):
        await adjustments.set_adjustment(
            "EMP001", "June", 2025, PayrollAdjustment(other_deduction=Decimal("100"))
        )

        record = await lock_service.lock(request_, 6, 2025)

        assert record.month == "June"
        assert Decimal(record.salary_data["other_deduction"]) == Decimal("100")

    async def test_relock_is_noop(self, lock_service, request_):
        first = await lock_service.lock(request_, "June", 2025)
        snapshot = dict(first.salary_data)

        request_.adjustment = PayrollAdjustment(tds=Decimal("5000"))
        second = await lock_service.lock(request_, "June", 2025)

        assert second.salary_data == snapshot
        assert second.id == first.id

    async def test_missing_structure_not_locked(self, lock_service, employee, attendance):
        with pytest.raises(SalaryStructureNotConfiguredError):
            await lock_service.lock(LockRequest(employee, None, attendance), "June", 2025)

        assert await lock_service.get_record("EMP001", "June", 2025) is None


class TestUnlock:
    """Test re-opening a locked month."""

    async def test_unlock_requires_confirmation(self, lock_service, request_):
        await lock_service.lock(request_, "June", 2025)

        with pytest.raises(UnlockNotConfirmedError) as exc_info:
            await lock_service.unlock("EMP001", "June", 2025)

        assert exc_info.value.employee_codes == ["EMP001"]
        record = await lock_service.get_record("EMP001", "June", 2025)
        assert record.status == "Locked"

    async def test_unlock_keeps_snapshot(self, lock_service, request_):
        locked = await lock_service.lock(request_, "June", 2025)
        snapshot = dict(locked.salary_data)

        record = await lock_service.unlock("EMP001", "June", 2025, confirmed=True)

        assert record.status == "Open"
        assert record.salary_data == snapshot

    async def test_unlock_open_is_noop(self, lock_service):
        assert await lock_service.unlock("EMP001", "June", 2025, confirmed=True) is None

    async def test_relock_after_unlock_recomputes(self, lock_service, request_):
        await lock_service.lock(request_, "June", 2025)
        await lock_service.unlock("EMP001", "June", 2025, confirmed=True)

        request_.adjustment = PayrollAdjustment(tds=Decimal("1000"))
        record = await lock_service.lock(request_, "June", 2025)

        assert record.status == "Locked"
        assert record.salary_data["tds"] == "1000"
        assert record.net_pay == Decimal("26177")


class TestAdjustmentGate:
    """Adjustments are frozen while the month is locked."""

    async def test_write_rejected_while_locked(self, lock_service, adjustments, request_):
        await lock_service.lock(request_, "June", 2025)

        with pytest.raises(RecordLockedError):
            await adjustments.set_adjustment("EMP001", "June", 2025, PayrollAdjustment(tds=Decimal("1")))
        with pytest.raises(RecordLockedError):
            await adjustments.update_field("EMP001", "June", 2025, "advance", 500)

        await lock_service.unlock("EMP001", "June", 2025, confirmed=True)
        updated = await adjustments.update_field("EMP001", "June", 2025, "advance", 500)

        assert updated.advance == Decimal("500")
        stored = await adjustments.get_adjustment("EMP001", "June", 2025)
        assert stored.advance == Decimal("500")

    async def test_other_months_stay_editable(self, lock_service, adjustments, request_):
        await lock_service.lock(request_, "June", 2025)
        await adjustments.set_adjustment("EMP001", "July", 2025, PayrollAdjustment(tds=Decimal("1")))
        assert await adjustments.get_status("EMP001", "July", 2025) == "Open"

    async def test_negative_values_rejected(self, adjustments):
        with pytest.raises(ValueError):
            await adjustments.set_adjustment(
                "EMP001", "June", 2025, PayrollAdjustment(tds=Decimal("-1"))
            )

    async def test_locked_snapshot_wins(self, lock_service, adjustments, request_):
        request_.adjustment = PayrollAdjustment(advance=Decimal("750"))
        await lock_service.lock(request_, "June", 2025)

        effective = await adjustments.get_adjustments("June", 2025)

        assert effective["EMP001"].advance == Decimal("750")


class TestBulkOperations:
    """One employee's failure never aborts the batch."""

    async def test_bulk_lock_partial_success(self, lock_service, request_, structure):
        await lock_service.lock(_other_employee("EMP003", structure), "June", 2025)
        requests = [
            request_,
            _other_employee("EMP002", None),
            _other_employee("EMP003", structure),
            _other_employee("EMP004", structure),
        ]

        result = await lock_service.bulk_lock(requests, "June", 2025)

        assert result.locked == ["EMP001", "EMP004"]
        assert result.unchanged == ["EMP003"]
        assert list(result.skipped) == ["EMP002"]
        assert result.success is False
        assert result.summary() == "2 locked, 1 unchanged, 1 skipped"

        records = await lock_service.get_records("June", 2025)
        assert sorted(records) == ["EMP001", "EMP003", "EMP004"]
        assert all(r.is_locked for r in records.values())
        assert records["EMP004"].net_pay == Decimal("27975")

    async def test_bulk_unlock(self, lock_service, request_, structure):
        await lock_service.bulk_lock([request_, _other_employee("EMP002", structure)], "June", 2025)

        with pytest.raises(UnlockNotConfirmedError):
            await lock_service.bulk_unlock(["EMP001", "EMP002"], "June", 2025)

        result = await lock_service.bulk_unlock(
            ["EMP001", "EMP002", "EMP009"], "June", 2025, confirmed=True
        )

        assert result.unlocked == ["EMP001", "EMP002"]
        assert result.unchanged == ["EMP009"]
        records = await lock_service.get_records("June", 2025)
        assert {r.status for r in records.values()} == {"Open"}

    async def test_duplicate_requests_locked_once(self, lock_service, request_, structure):
        duplicate = LockRequest(
            employee=request_.employee,
            structure=structure,
            attendance=request_.attendance,
            adjustment=PayrollAdjustment(tds=Decimal("200")),
        )

        result = await lock_service.bulk_lock([request_, duplicate], "June", 2025)

        assert result.locked == ["EMP001"]
        assert result.success is True
        record = await lock_service.get_record("EMP001", "June", 2025)
        assert record.salary_data["tds"] == "200"

    async def test_storage_failure_is_isolated(self, lock_service, request_, structure, monkeypatch):
        store = lock_service._upsert_locked

        async def failing_store(snapshots):
            if snapshots[0].employee_code == "EMP002":
                raise IntegrityError("INSERT INTO monthly_salary_record", {}, Exception("rejected"))
            await store(snapshots)

        monkeypatch.setattr(lock_service, "_upsert_locked", failing_store)
        requests = [
            request_,
            _other_employee("EMP002", structure),
            _other_employee("EMP003", structure),
        ]

        result = await lock_service.bulk_lock(requests, "June", 2025)

        assert result.locked == ["EMP001", "EMP003"]
        assert list(result.errors) == ["EMP002"]
        assert result.summary() == "2 locked, 1 skipped"
        records = await lock_service.get_records("June", 2025)
        assert sorted(records) == ["EMP001", "EMP003"]


class TestLoanRecovery:
    """Loan proposals derive from locked history."""

    @pytest.fixture
    def loan(self):
        return LoanRecord(
            employee_code="EMP001",
            total_amount=Decimal("12000"),
            installment_amount=Decimal("1000"),
            repayment_start_date=date(2025, 3, 1),
            status="Approved",
            disbursement_date=date(2025, 2, 20),
        )

    async def _lock_months(self, lock_service, employee, structure):
        for month in ("March", "April", "May"):
            await lock_service.lock(
                LockRequest(
                    employee,
                    structure,
                    build_summary("EMP001", month, 2025, present=20),
                    PayrollAdjustment(advance=Decimal("1000")),
                ),
                month,
                2025,
            )

    async def test_prepare_month_proposes_installment(
        self, lock_service, adjustments, employee, structure, loan
    ):
        await self._lock_months(lock_service, employee, structure)

        prepared = await adjustments.prepare_month("June", 2025, [loan], save_proposals=True)

        assert prepared.proposed == {"EMP001": Decimal("1000")}
        assert prepared.loan_positions["EMP001"].outstanding == Decimal("9000")
        stored = await adjustments.get_adjustment("EMP001", "June", 2025)
        assert stored.advance == Decimal("1000")

    async def test_existing_adjustment_not_overwritten(
        self, lock_service, adjustments, employee, structure, loan
    ):
        await self._lock_months(lock_service, employee, structure)
        await adjustments.set_adjustment("EMP001", "June", 2025, PayrollAdjustment(tds=Decimal("50")))

        prepared = await adjustments.prepare_month("June", 2025, [loan], save_proposals=True)

        assert prepared.proposed == {}
        assert prepared.adjustments["EMP001"].advance == Decimal("0")

    async def test_unlocked_months_do_not_count(
        self, lock_service, adjustments, employee, structure, loan
    ):
        await self._lock_months(lock_service, employee, structure)
        await lock_service.unlock("EMP001", "May", 2025, confirmed=True)

        prepared = await adjustments.prepare_month("June", 2025, [loan])

        assert prepared.loan_positions["EMP001"].total_repaid == Decimal("2000")

    async def test_lock_applies_proposed_recovery(
        self, lock_service, adjustments, employee, structure, attendance, loan
    ):
        await self._lock_months(lock_service, employee, structure)
        await adjustments.prepare_month("June", 2025, [loan])

        record = await lock_service.lock(LockRequest(employee, structure, attendance), "June", 2025)

        assert Decimal(record.salary_data["advance"]) == Decimal("1000")
        history = await adjustments.locked_history(["EMP001"])
        assert sum(r.advance for r in history) == Decimal("4000")

    async def test_preview_does_not_store_proposals(
        self, lock_service, adjustments, employee, structure, loan
    ):
        await self._lock_months(lock_service, employee, structure)

        prepared = await adjustments.prepare_month("June", 2025, [loan], save_proposals=False)

        assert prepared.proposed == {"EMP001": Decimal("1000")}
        assert await adjustments.get_adjustment("EMP001", "June", 2025) is None

    async def test_loan_statement(self, lock_service, adjustments, employee, structure, loan):
        await self._lock_months(lock_service, employee, structure)

        ledger = await adjustments.loan_statement("EMP001", [loan])

        assert [e.entry_type for e in ledger] == ["Debit", "Credit", "Credit", "Credit"]
        assert ledger[-1].balance == Decimal("9000")


class TestPayslipService:
    """Payslips come from locked snapshots only."""

    async def test_payslips_and_summary(self, session, lock_service, request_, structure):
        await lock_service.bulk_lock([request_, _other_employee("EMP002", structure)], "June", 2025)
        await lock_service.unlock("EMP002", "June", 2025, confirmed=True)
        service = PayslipService(session)

        payslips = await service.payslips("June", 2025)
        summary = await service.summary(6, 2025)

        assert [p.employee_code for p in payslips] == ["EMP001"]
        assert summary.processed == 1
        assert summary.total_net_pay == Decimal("27177")

    async def test_department_filter(self, session, lock_service, request_, structure):
        await lock_service.bulk_lock([request_, _other_employee("EMP002", structure)], "June", 2025)

        sales = await PayslipService(session).payslips("June", 2025, department="Sales")

        assert [p.employee_code for p in sales] == ["EMP002"]


class TestRuleSetRepository:
    """Test threshold configuration persistence."""

    async def test_defaults_when_missing(self, session):
        assert await RuleSetRepository(session).load() == ThresholdRuleSet()

    async def test_save_and_load(self, session, rules):
        repository = RuleSetRepository(session)
        await repository.save(rules)

        loaded = await repository.load()

        assert loaded == rules

        updated = replace(rules, late_threshold=20)
        await repository.save(updated)
        assert (await repository.load()).late_threshold == 20

    async def test_duplicate_pairs_rejected(self, session):
        rules = ThresholdRuleSet(
            compounding_rules=(
                CompoundingRule("LT", "ED", "HD"),
                CompoundingRule("lt", "ed", "A"),
            )
        )
        with pytest.raises(DuplicateCompoundingRuleError):
            await RuleSetRepository(session).save(rules)

    async def test_malformed_stored_rule_ignored(self, session):
        session.add(
            AttendanceRuleSetRecord(
                compounding_rules=[
                    {"in_status": "SL", "out_status": "P", "result_status": "SL"},
                    {"in_status": "LT"},
                ]
            )
        )
        await session.flush()

        loaded = await RuleSetRepository(session).load()

        assert loaded.compounding_rules == (CompoundingRule("SL", "P", "SL"),)
