"""ORM models."""

from attendance_payroll.models.base import Base, TimestampMixin
from attendance_payroll.models.rules import AttendanceRuleSetRecord
from attendance_payroll.models.salary import MonthlySalaryRecord, PayrollAdjustmentRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "AttendanceRuleSetRecord",
    "MonthlySalaryRecord",
    "PayrollAdjustmentRecord",
]
