"""Payroll lock, adjustment and payslip services."""

from attendance_payroll.services.state_machine import (
    InvalidTransitionError,
    RecordLockedError,
    SalaryLockStateMachine,
    SalaryRecordStatus,
)

__all__ = [
    "InvalidTransitionError",
    "RecordLockedError",
    "SalaryLockStateMachine",
    "SalaryRecordStatus",
]
