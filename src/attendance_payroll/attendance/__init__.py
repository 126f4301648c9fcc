"""Attendance classification: punches to daily statuses to monthly counts."""

from attendance_payroll.attendance.classifier import AttendanceClassifier, classify_punch
from attendance_payroll.attendance.compounding import CompoundingResolver
from attendance_payroll.attendance.daily import DailyAggregator, collapse_punches
from attendance_payroll.attendance.monthly import MonthlyAggregator, build_monthly_statuses
from attendance_payroll.attendance.types import (
    CompoundingRule,
    ShiftSchedule,
    StatusCode,
    ThresholdRuleSet,
)
from attendance_payroll.attendance.weekly_off import WeeklyOffCalendar

__all__ = [
    "AttendanceClassifier",
    "CompoundingResolver",
    "CompoundingRule",
    "DailyAggregator",
    "MonthlyAggregator",
    "ShiftSchedule",
    "StatusCode",
    "ThresholdRuleSet",
    "WeeklyOffCalendar",
    "build_monthly_statuses",
    "classify_punch",
    "collapse_punches",
]
