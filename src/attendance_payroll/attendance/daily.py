"""Per employee-day status aggregation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from attendance_payroll.attendance.classifier import AttendanceClassifier, normalize_punch_time
from attendance_payroll.attendance.compounding import CompoundingResolver
from attendance_payroll.attendance.types import (
    DailyStatus,
    DayPunches,
    PunchType,
    RawPunchEvent,
    ShiftSchedule,
    StatusCode,
    ThresholdRuleSet,
    status_value,
)
from attendance_payroll.attendance.weekly_off import WeeklyOffCalendar


def collapse_punches(
    events: Iterable[RawPunchEvent],
) -> dict[tuple[str, date], DayPunches]:
    """Reduce raw events to the earliest IN and latest OUT per employee-day."""
    firsts: dict[tuple[str, date], datetime] = {}
    lasts: dict[tuple[str, date], datetime] = {}

    for event in events:
        key = (event.employee_code, event.punch_time.date())
        if event.punch_type == PunchType.IN:
            current = firsts.get(key)
            if current is None or event.punch_time < current:
                firsts[key] = event.punch_time
        else:
            current = lasts.get(key)
            if current is None or event.punch_time > current:
                lasts[key] = event.punch_time

    collapsed: dict[tuple[str, date], DayPunches] = {}
    for key in firsts.keys() | lasts.keys():
        first_in = firsts.get(key)
        last_out = lasts.get(key)
        collapsed[key] = DayPunches(
            in_time=first_in.strftime("%H:%M") if first_in else None,
            out_time=last_out.strftime("%H:%M") if last_out else None,
        )
    return collapsed


class DailyAggregator:
    """Produces one status per employee-day.

    Resolution order:
    1) A manual leave/regularization code overrides everything
    2) IN and OUT are classified independently; a missing side is coded
       ``PI`` (only IN punched) or ``PO`` (only OUT punched)
    3) No punches at all on a configured weekly-off day -> ``W/O`` on both sides
    4) A matching compounding rule decides the day
    5) Otherwise the IN status, unless it is ``P`` or ``W/O``, in which
       case the OUT status
    """

    def __init__(
        self,
        rules: ThresholdRuleSet,
        calendar: WeeklyOffCalendar | None = None,
    ):
        self.rules = rules
        self.classifier = AttendanceClassifier(rules)
        self.resolver = CompoundingResolver(rules.compounding_rules)
        self.calendar = calendar or WeeklyOffCalendar()

    def classify_pair(
        self,
        employee_code: str,
        work_date: date,
        punches: DayPunches | None,
        shift: ShiftSchedule,
    ) -> tuple[str, str]:
        """Raw (IN status, OUT status) for one day, before compounding."""
        in_time = normalize_punch_time(punches.in_time) if punches else None
        out_time = normalize_punch_time(punches.out_time) if punches else None

        if in_time is None and out_time is None:
            if self.calendar.is_weekly_off(employee_code, work_date):
                return StatusCode.WEEKLY_OFF.value, StatusCode.WEEKLY_OFF.value
            return StatusCode.ABSENT.value, StatusCode.ABSENT.value

        if out_time is None:
            in_status = self.classifier.classify(in_time, shift.start_time, PunchType.IN)
            return in_status.value, StatusCode.PUNCH_IN_ONLY.value

        if in_time is None:
            out_status = self.classifier.classify(out_time, shift.end_time, PunchType.OUT)
            return StatusCode.PUNCH_OUT_ONLY.value, out_status.value

        in_status = self.classifier.classify(in_time, shift.start_time, PunchType.IN)
        out_status = self.classifier.classify(out_time, shift.end_time, PunchType.OUT)
        return in_status.value, out_status.value

    def aggregate(
        self,
        employee_code: str,
        work_date: date,
        punches: DayPunches | None,
        shift: ShiftSchedule,
        manual_status: str | None = None,
    ) -> DailyStatus:
        """Final status for one employee-day."""
        in_time = punches.in_time if punches else None
        out_time = punches.out_time if punches else None

        if manual_status:
            code = status_value(manual_status)
            return DailyStatus(
                employee_code=employee_code,
                work_date=work_date,
                in_status=code,
                out_status=code,
                status=code,
                source="manual",
                in_time=in_time,
                out_time=out_time,
            )

        in_status, out_status = self.classify_pair(employee_code, work_date, punches, shift)

        compounded = self.resolver.resolve(in_status, out_status)
        if compounded is not None:
            status, source = compounded, "compounded"
        elif in_status not in (StatusCode.PRESENT.value, StatusCode.WEEKLY_OFF.value):
            status, source = in_status, "fallback"
        else:
            status, source = out_status, "fallback"

        return DailyStatus(
            employee_code=employee_code,
            work_date=work_date,
            in_status=in_status,
            out_status=out_status,
            status=status,
            source=source,
            in_time=in_time,
            out_time=out_time,
        )
