"""Monthly salary record lock state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class SalaryRecordStatus(str, Enum):
    """Monthly salary record status values."""

    OPEN = "Open"
    LOCKED = "Locked"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RecordLockedError(Exception):
    """Raised when editing inputs of a month whose salary record is Locked."""

    def __init__(self, employee_code: str, month: str, year: int):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        super().__init__(
            f"Salary for {employee_code} ({month} {year}) is locked; unlock it before editing"
        )


def _value(status: str | SalaryRecordStatus | None) -> str | None:
    if isinstance(status, SalaryRecordStatus):
        return status.value
    return status


class SalaryLockStateMachine:
    """State machine for monthly salary record status.

    Allowed transitions:
    - Open → Locked (lock: snapshot is computed and frozen)
    - Locked → Open (unlock: editing re-enabled, snapshot kept until next lock)

    There is no terminal state. Same-state requests (re-lock, unlock of an
    Open record) are no-ops rather than errors. A month with no record yet
    behaves as Open.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        SalaryRecordStatus.OPEN.value: [SalaryRecordStatus.LOCKED.value],
        SalaryRecordStatus.LOCKED.value: [SalaryRecordStatus.OPEN.value],
    }

    # Statuses where adjustments and attendance counts can be modified
    INPUTS_MUTABLE = {SalaryRecordStatus.OPEN.value}

    @classmethod
    def normalize(cls, status: str | SalaryRecordStatus | None) -> str:
        """Map a stored status (or a missing record) onto a known state."""
        value = _value(status)
        if value is None:
            return SalaryRecordStatus.OPEN.value
        if value not in cls.VALID_TRANSITIONS:
            raise ValueError(f"Unknown salary record status: {value!r}")
        return value

    @classmethod
    def can_transition(cls, from_status: str | None, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(cls.normalize(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def is_noop(cls, from_status: str | None, to_status: str) -> bool:
        """Check if the request leaves the record in the state it is already in."""
        return cls.normalize(from_status) == _value(to_status)

    @classmethod
    def validate_transition(cls, from_status: str | None, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid.

        No-op requests pass validation.
        """
        if cls.is_noop(from_status, to_status):
            return
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(cls.normalize(from_status), str(_value(to_status)))

    @classmethod
    def can_modify_inputs(cls, status: str | None) -> bool:
        """Check if adjustments/attendance for the month can be modified."""
        return cls.normalize(status) in cls.INPUTS_MUTABLE

    @classmethod
    def ensure_inputs_mutable(
        cls, status: str | None, employee_code: str, month: str, year: int
    ) -> None:
        """Raise RecordLockedError when the record forbids edits."""
        if not cls.can_modify_inputs(status):
            raise RecordLockedError(employee_code, month, year)

    @classmethod
    def is_unlock(cls, from_status: str | None, to_status: str) -> bool:
        """Check if this transition is an unlock (Locked → Open)."""
        return (
            cls.normalize(from_status) == SalaryRecordStatus.LOCKED.value
            and _value(to_status) == SalaryRecordStatus.OPEN.value
        )

    @classmethod
    def get_next_statuses(cls, current_status: str | None) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(cls.normalize(current_status), [])
