"""Monthly attendance grids and status tallies."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date

from attendance_payroll.attendance.daily import DailyAggregator
from attendance_payroll.attendance.types import (
    DailyStatus,
    DayPunches,
    ShiftSchedule,
    StatusCode,
    status_value,
)
from attendance_payroll.periods import month_dates

SANDWICH_FLAG = "sandwich"


@dataclass
class MonthlyTally:
    """Category counts for one employee-month.

    Informational only: the paid-day figures payroll uses come from the
    prepared monthly attendance summary.
    """

    present: int = 0
    late: int = 0
    short_leave: int = 0
    half_day: int = 0
    missing: int = 0
    weekly_off: int = 0
    absent: int = 0
    others: dict[str, int] = field(default_factory=dict)

    @property
    def working(self) -> int:
        return self.present + self.late + self.short_leave + self.half_day

    @property
    def total_days(self) -> int:
        return (
            self.working
            + self.missing
            + self.weekly_off
            + self.absent
            + sum(self.others.values())
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "working": self.working,
            "present": self.present,
            "late": self.late,
            "short_leave": self.short_leave,
            "half_day": self.half_day,
            "missing": self.missing,
            "weekly_off": self.weekly_off,
            "absent": self.absent,
            "others": dict(sorted(self.others.items())),
        }


class MonthlyAggregator:
    """Tallies daily statuses into monthly categories."""

    CATEGORY_BY_CODE = {
        StatusCode.PRESENT.value: "present",
        StatusCode.LATE.value: "late",
        StatusCode.SHORT_LEAVE.value: "short_leave",
        StatusCode.HALF_DAY.value: "half_day",
        StatusCode.PUNCH_IN_ONLY.value: "missing",
        StatusCode.PUNCH_OUT_ONLY.value: "missing",
        StatusCode.WEEKLY_OFF.value: "weekly_off",
        StatusCode.ABSENT.value: "absent",
    }

    def tally(self, statuses: Iterable[DailyStatus | str]) -> MonthlyTally:
        result = MonthlyTally()
        for item in statuses:
            code = item.status if isinstance(item, DailyStatus) else status_value(item)
            category = self.CATEGORY_BY_CODE.get(code)
            if category is None:
                # ED, LTS and leave-type codes are kept for audit only.
                result.others[code] = result.others.get(code, 0) + 1
            else:
                setattr(result, category, getattr(result, category) + 1)
        return result


def apply_sandwich_rule(statuses: list[DailyStatus]) -> list[DailyStatus]:
    """Turn weekly-off runs enclosed by absences into absences.

    A run of consecutive ``W/O`` days with an ``A`` immediately before and
    after it is counted as absent. Runs touching the month boundary are left
    alone since the neighbouring day is unknown.
    """
    result = list(statuses)
    absent = StatusCode.ABSENT.value
    weekly_off = StatusCode.WEEKLY_OFF.value

    i = 0
    while i < len(result):
        if result[i].status != weekly_off:
            i += 1
            continue
        start = i
        while i < len(result) and result[i].status == weekly_off:
            i += 1
        end = i  # exclusive
        if start > 0 and end < len(result):
            if result[start - 1].status == absent and result[end].status == absent:
                for j in range(start, end):
                    result[j] = replace(
                        result[j],
                        status=absent,
                        flags=result[j].flags + (SANDWICH_FLAG,),
                    )
    return result


def build_monthly_statuses(
    aggregator: DailyAggregator,
    employee_code: str,
    month: str | int,
    year: int,
    punches: Mapping[tuple[str, date], DayPunches],
    shift: ShiftSchedule,
    leave_overrides: Mapping[date, str] | None = None,
) -> list[DailyStatus]:
    """Final status for every day of the month for one employee."""
    overrides = leave_overrides or {}
    statuses = [
        aggregator.aggregate(
            employee_code,
            day,
            punches.get((employee_code, day)),
            shift,
            manual_status=overrides.get(day),
        )
        for day in month_dates(month, year)
    ]
    if aggregator.calendar.uses_sandwich_rule(employee_code):
        statuses = apply_sandwich_rule(statuses)
    return statuses


def build_monthly_pair_grid(
    aggregator: DailyAggregator,
    employee_code: str,
    month: str | int,
    year: int,
    punches: Mapping[tuple[str, date], DayPunches],
    shift: ShiftSchedule,
) -> list[tuple[date, str, str]]:
    """Raw (date, IN status, OUT status) rows for the month, before compounding."""
    return [
        (day, *aggregator.classify_pair(employee_code, day, punches.get((employee_code, day)), shift))
        for day in month_dates(month, year)
    ]
