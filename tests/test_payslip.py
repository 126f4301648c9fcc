"""Tests for payslips and payroll totals built from locked snapshots."""

from datetime import date
from decimal import Decimal

import pytest

from attendance_payroll.calculators.engine import PayrollEngine
from attendance_payroll.calculators.types import PayrollAdjustment
from attendance_payroll.models import MonthlySalaryRecord
from attendance_payroll.services.payslip_service import (
    PayslipNotAvailableError,
    build_payslip,
    summarize_payroll,
)


@pytest.fixture
def locked_record(employee, structure, attendance):
    snapshot = PayrollEngine("1.0.0").calculate(
        employee,
        structure,
        attendance,
        PayrollAdjustment(arrear_amount=Decimal("500"), tds=Decimal("200"), advance=Decimal("1000")),
        "June",
        2025,
    )
    return MonthlySalaryRecord(
        employee_code=snapshot.employee_code,
        employee_name=snapshot.employee_name,
        month="June",
        year=2025,
        status="Locked",
        salary_data=snapshot.to_dict(),
        net_pay=snapshot.net_pay,
    )


class TestBuildPayslip:
    """Test payslip rendering from the stored snapshot."""

    def test_payslip_lines(self, locked_record):
        payslip = build_payslip(locked_record)

        assert payslip.pay_period_start == date(2025, 6, 1)
        assert payslip.pay_period_end == date(2025, 6, 30)
        assert [line.name for line in payslip.earnings] == [
            "Basic Salary",
            "HRA",
            "Special Allowance",
            "Arrears",
        ]
        assert payslip.earnings[-1].amount == Decimal("2500")
        assert [line.name for line in payslip.deductions] == ["EPF", "ESIC", "TDS", "Advance"]

    def test_payslip_totals(self, locked_record):
        payslip = build_payslip(locked_record)

        assert payslip.total_earnings == Decimal("29500")
        assert payslip.total_deductions == Decimal("3023")
        assert payslip.net_pay == Decimal("26477")
        assert payslip.ctc == Decimal("31998")
        assert payslip.working_days == 30
        assert payslip.paid_days == Decimal("27")
        assert payslip.lop_days == Decimal("3")
        assert payslip.department == "Finance"

    def test_snapshot_is_not_recomputed(self, locked_record):
        locked_record.salary_data = {**locked_record.salary_data, "net_pay": "12345"}
        assert build_payslip(locked_record).net_pay == Decimal("12345")

    def test_open_record_has_no_payslip(self, locked_record):
        locked_record.status = "Open"
        with pytest.raises(PayslipNotAvailableError):
            build_payslip(locked_record)


class TestSummarizePayroll:
    """Test dashboard totals."""

    def test_totals_over_locked_records(self, locked_record):
        open_record = MonthlySalaryRecord(
            employee_code="EMP002",
            month="June",
            year=2025,
            status="Open",
            salary_data={"net_pay": "99999"},
        )

        summary = summarize_payroll([locked_record, locked_record, open_record])

        assert summary.processed == 2
        assert summary.total_net_pay == Decimal("52954")
        assert summary.total_payroll_cost == Decimal("59000")
        assert summary.total_pf == Decimal("3240")
        assert summary.total_advance == Decimal("2000")
        assert summary.employer_components == {"EPF": Decimal("3240"), "ESIC": Decimal("1756")}
