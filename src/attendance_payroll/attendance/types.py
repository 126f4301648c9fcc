"""Type definitions for attendance classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum

from attendance_payroll.config import get_settings


class PunchType(str, Enum):
    """Direction of a raw clock punch."""

    IN = "IN"
    OUT = "OUT"


class StatusCode(str, Enum):
    """Day status codes produced by classification.

    Leave-type codes (CL, SL-leave, EL, ...) come from the leave ledger and
    are carried as plain strings; they are not members of this enum.
    """

    PRESENT = "P"
    ABSENT = "A"
    LATE = "LT"
    LATE_TO_SHIFT = "LTS"
    SHORT_LEAVE = "SL"
    HALF_DAY = "HD"
    EARLY_DEPARTURE = "ED"
    WEEKLY_OFF = "W/O"
    PUNCH_IN_ONLY = "PI"
    PUNCH_OUT_ONLY = "PO"
    NOT_AVAILABLE = "#N/A"


def status_value(status: str | StatusCode) -> str:
    """Return the plain string code for a status."""
    if isinstance(status, StatusCode):
        return status.value
    return str(status)


@dataclass(frozen=True)
class ShiftSchedule:
    """Expected IN/OUT times for one shift (time of day, no date)."""

    start_time: time
    end_time: time
    shift_id: int | None = None

    @classmethod
    def from_strings(cls, start: str, end: str, shift_id: int | None = None) -> ShiftSchedule:
        """Build a schedule from ``HH:MM`` strings."""
        return cls(
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            shift_id=shift_id,
        )

    @classmethod
    def default(cls) -> ShiftSchedule:
        """Shift used for employees without a roster entry."""
        settings = get_settings()
        return cls.from_strings(settings.default_shift_start, settings.default_shift_end)


@dataclass(frozen=True)
class CompoundingRule:
    """Maps an (IN status, OUT status) pair onto one overriding day status."""

    in_status: str
    out_status: str
    result_status: str

    def __post_init__(self) -> None:
        # Codes are stored upper-cased regardless of how they were typed.
        object.__setattr__(self, "in_status", status_value(self.in_status).strip().upper())
        object.__setattr__(self, "out_status", status_value(self.out_status).strip().upper())
        object.__setattr__(self, "result_status", status_value(self.result_status).strip().upper())

    @property
    def pair(self) -> tuple[str, str]:
        return (self.in_status, self.out_status)

    def to_dict(self) -> dict[str, str]:
        return {
            "in_status": self.in_status,
            "out_status": self.out_status,
            "result_status": self.result_status,
        }


@dataclass(frozen=True)
class ThresholdRuleSet:
    """Grace periods, thresholds (all in minutes) and compounding rules.

    Thresholds are not assumed to be stored in any particular order; the
    classifier sorts them itself.
    """

    in_grace_period: int = 13
    out_grace_period: int = 5
    late_threshold: int = 13
    in_short_leave_threshold: int = 30
    out_short_leave_threshold: int = 120
    in_half_day_threshold: int = 120
    out_half_day_threshold: int = 240
    compounding_rules: tuple[CompoundingRule, ...] = ()

    THRESHOLD_FIELDS = (
        "in_grace_period",
        "out_grace_period",
        "late_threshold",
        "in_short_leave_threshold",
        "out_short_leave_threshold",
        "in_half_day_threshold",
        "out_half_day_threshold",
    )

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in self.THRESHOLD_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer number of minutes")
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        object.__setattr__(self, "compounding_rules", tuple(self.compounding_rules))

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {name: getattr(self, name) for name in self.THRESHOLD_FIELDS}
        data["compounding_rules"] = [r.to_dict() for r in self.compounding_rules]
        return data


@dataclass(frozen=True)
class RawPunchEvent:
    """One append-only clock event."""

    employee_code: str
    punch_time: datetime
    punch_type: PunchType


@dataclass(frozen=True)
class DayPunches:
    """The earliest IN and latest OUT of one employee-day, as ``HH:MM``."""

    in_time: str | None = None
    out_time: str | None = None


@dataclass(frozen=True)
class DailyStatus:
    """Derived status of one employee-day.

    ``source`` records which step produced ``status``: ``manual`` (leave or
    regularization override), ``compounded`` (rule-table hit) or
    ``fallback`` (IN-priority default).
    """

    employee_code: str
    work_date: date
    in_status: str
    out_status: str
    status: str
    source: str = "fallback"
    in_time: str | None = None
    out_time: str | None = None
    flags: tuple[str, ...] = field(default_factory=tuple)
