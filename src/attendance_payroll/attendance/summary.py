"""Monthly attendance summary preparation and leave regularization."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from attendance_payroll.attendance.types import StatusCode
from attendance_payroll.periods import days_in_month, month_name
from attendance_payroll.services.state_machine import RecordLockedError, SalaryRecordStatus

# Fields whose sum is the month's paid days.
PAID_DAY_FIELDS = ("holiday", "week_off", "present", "leave")
COUNT_FIELDS = PAID_DAY_FIELDS + ("lwp", "arrear_days")

# Only these day statuses may be converted into a leave day.
REGULARIZABLE_STATUSES = frozenset({StatusCode.ABSENT.value, StatusCode.NOT_AVAILABLE.value})


class AttendanceSummaryError(Exception):
    """Raised when a summary edit would produce inconsistent counts."""

    def __init__(self, employee_code: str, reason: str):
        self.employee_code = employee_code
        self.reason = reason
        super().__init__(f"Attendance summary for {employee_code} rejected: {reason}")


class InsufficientLeaveBalanceError(Exception):
    """Raised when regularizing an absence with no remaining leave."""

    def __init__(self, employee_code: str, leave_type: str):
        self.employee_code = employee_code
        self.leave_type = leave_type
        super().__init__(f"Insufficient balance for {leave_type} (employee {employee_code})")


@dataclass(frozen=True)
class MonthlyAttendanceSummary:
    """Prepared paid-day counts for one employee-month."""

    employee_code: str
    month: str
    year: int
    holiday: Decimal = Decimal("0")
    week_off: Decimal = Decimal("0")
    present: Decimal = Decimal("0")
    lwp: Decimal = Decimal("0")
    leave: Decimal = Decimal("0")
    arrear_days: Decimal = Decimal("0")
    total_paid_days: Decimal = Decimal("0")
    lock_status: str = SalaryRecordStatus.OPEN.value

    @property
    def days_in_month(self) -> int:
        return days_in_month(self.month, self.year)

    def to_dict(self) -> dict[str, object]:
        return {
            "employee_code": self.employee_code,
            "month": self.month,
            "year": self.year,
            "holiday": str(self.holiday),
            "week_off": str(self.week_off),
            "present": str(self.present),
            "lwp": str(self.lwp),
            "leave": str(self.leave),
            "arrear_days": str(self.arrear_days),
            "total_paid_days": str(self.total_paid_days),
        }


@dataclass
class LeaveBalance:
    """One row of the leave-balance ledger."""

    employee_code: str
    leave_type: str
    used: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")


def _paid_days(counts: dict[str, Decimal]) -> Decimal:
    return sum((counts[f] for f in PAID_DAY_FIELDS), Decimal("0"))


def build_summary(
    employee_code: str,
    month: str | int,
    year: int,
    *,
    holiday: Decimal | int = 0,
    week_off: Decimal | int = 0,
    present: Decimal | int = 0,
    lwp: Decimal | int = 0,
    leave: Decimal | int = 0,
    arrear_days: Decimal | int = 0,
) -> MonthlyAttendanceSummary:
    """Build a validated summary with ``total_paid_days`` derived from its parts."""
    counts = {
        "holiday": Decimal(holiday),
        "week_off": Decimal(week_off),
        "present": Decimal(present),
        "lwp": Decimal(lwp),
        "leave": Decimal(leave),
        "arrear_days": Decimal(arrear_days),
    }
    for name, value in counts.items():
        if value < 0:
            raise AttendanceSummaryError(employee_code, f"{name} cannot be negative")

    total = _paid_days(counts)
    limit = days_in_month(month, year)
    if total > limit:
        raise AttendanceSummaryError(
            employee_code, f"total paid days cannot exceed {limit} for the selected month"
        )

    return MonthlyAttendanceSummary(
        employee_code=employee_code,
        month=month_name(month),
        year=year,
        total_paid_days=total,
        **counts,
    )


def update_summary_field(
    summary: MonthlyAttendanceSummary,
    field_name: str,
    value: Decimal | int,
    *,
    salary_status: str | None = None,
) -> MonthlyAttendanceSummary:
    """Edit one count, recomputing paid days.

    Rejected while either the summary itself or the month's salary record
    is Locked.
    """
    if field_name not in COUNT_FIELDS:
        raise ValueError(f"Unknown attendance field: {field_name}")
    locked = SalaryRecordStatus.LOCKED.value
    if summary.lock_status == locked or salary_status == locked:
        raise RecordLockedError(summary.employee_code, summary.month, summary.year)

    counts = {name: getattr(summary, name) for name in COUNT_FIELDS}
    counts[field_name] = Decimal(value)
    updated = build_summary(summary.employee_code, summary.month, summary.year, **counts)
    return replace(updated, lock_status=summary.lock_status)


def apply_leave_regularization(
    summary: MonthlyAttendanceSummary | None,
    balance: LeaveBalance | None,
    current_status: str,
    leave_type: str,
    *,
    salary_status: str | None = None,
) -> tuple[MonthlyAttendanceSummary | None, LeaveBalance, str]:
    """Convert one absent day into a leave day.

    Consumes one unit of leave balance and, if the month's summary has
    already been prepared, adds the day to ``leave`` and
    ``total_paid_days``. Returns the updated summary, the updated balance
    and the leave code to record as that day's manual override.

    A prepared summary is subject to the same checks as
    :func:`update_summary_field`: rejected while the summary or the month's
    salary record is Locked, and paid days may not exceed the month length.
    """
    employee_code = balance.employee_code if balance else (summary.employee_code if summary else "")
    if current_status not in REGULARIZABLE_STATUSES:
        raise AttendanceSummaryError(
            employee_code, f"only absent days can be regularized, got {current_status}"
        )
    if balance is None or balance.leave_type != leave_type or balance.remaining < 1:
        raise InsufficientLeaveBalanceError(employee_code, leave_type)

    updated_summary = summary
    if summary is not None:
        updated_summary = update_summary_field(
            summary, "leave", summary.leave + 1, salary_status=salary_status
        )

    updated_balance = LeaveBalance(
        employee_code=balance.employee_code,
        leave_type=balance.leave_type,
        used=balance.used + 1,
        remaining=balance.remaining - 1,
    )

    return updated_summary, updated_balance, leave_type
