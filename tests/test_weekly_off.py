"""Tests for weekly-off settings."""

from datetime import date

import pytest

from attendance_payroll.attendance.weekly_off import (
    WeeklyOffCalendar,
    WeeklyOffSetting,
    WeeklyOffType,
    weekday_name,
)

# 2025-06-01 is a Sunday
SUNDAY = date(2025, 6, 1)
MONDAY = date(2025, 6, 2)


class TestWeeklyOffType:
    """Test parsing of stored weekly-off types."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Fix Day", WeeklyOffType.FIXED_DAY),
            ("FixedDay", WeeklyOffType.FIXED_DAY),
            (None, WeeklyOffType.FIXED_DAY),
            ("Monthly 4", WeeklyOffType.MONTHLY_4),
            ("Monthly4", WeeklyOffType.MONTHLY_4),
            ("Monthly (Custom)", WeeklyOffType.MONTHLY_CUSTOM),
        ],
    )
    def test_parse(self, value, expected):
        assert WeeklyOffType.parse(value) == expected

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            WeeklyOffType.parse("Fortnightly")


class TestWeeklyOffSetting:
    """Test weekday matching."""

    def test_weekday_name(self):
        assert weekday_name(SUNDAY) == "Sunday"

    def test_fixed_day_matches_weekday(self):
        setting = WeeklyOffSetting("EMP001", frozenset({"sunday"}))
        assert setting.is_weekly_off(SUNDAY) is True
        assert setting.is_weekly_off(MONDAY) is False

    def test_effective_from_is_respected(self):
        setting = WeeklyOffSetting(
            "EMP001", frozenset({"Sunday"}), effective_from=date(2025, 6, 8)
        )
        assert setting.is_weekly_off(SUNDAY) is False
        assert setting.is_weekly_off(date(2025, 6, 8)) is True

    def test_monthly_four_never_marks_dates(self):
        setting = WeeklyOffSetting(
            "EMP001", frozenset({"Sunday"}), type=WeeklyOffType.MONTHLY_4
        )
        assert setting.monthly_count == 4
        assert setting.is_weekly_off(SUNDAY) is False


class TestWeeklyOffCalendar:
    """Test calendar lookups."""

    def test_from_mapping(self):
        calendar = WeeklyOffCalendar.from_mapping({"EMP001": ["Sunday", "Saturday"]})
        assert calendar.is_weekly_off("EMP001", SUNDAY) is True
        assert calendar.is_weekly_off("EMP001", date(2025, 6, 7)) is True
        assert calendar.is_weekly_off("EMP001", MONDAY) is False

    def test_unknown_employee_has_no_weekly_off(self):
        calendar = WeeklyOffCalendar.from_mapping({"EMP001": ["Sunday"]})
        assert calendar.is_weekly_off("EMP999", SUNDAY) is False
        assert calendar.setting_for("EMP999") is None

    def test_later_setting_replaces_earlier(self):
        calendar = WeeklyOffCalendar([
            WeeklyOffSetting("EMP001", frozenset({"Sunday"})),
            WeeklyOffSetting("EMP001", frozenset({"Monday"}), sandwich_rule=True),
        ])
        assert calendar.is_weekly_off("EMP001", SUNDAY) is False
        assert calendar.is_weekly_off("EMP001", MONDAY) is True
        assert calendar.uses_sandwich_rule("EMP001") is True
