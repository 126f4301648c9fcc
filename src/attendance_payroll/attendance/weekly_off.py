"""Weekly-off settings and the per-employee rest-day calendar."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class WeeklyOffType(str, Enum):
    """How an employee's rest days are defined."""

    FIXED_DAY = "Fix Day"
    MONTHLY_4 = "Monthly 4"
    MONTHLY_CUSTOM = "Monthly (Custom)"

    @classmethod
    def parse(cls, value: str | None) -> WeeklyOffType:
        """Parse stored values such as ``Fix Day``, ``FixedDay`` or ``Monthly4``."""
        if value is None:
            return cls.FIXED_DAY
        key = "".join(ch for ch in str(value).lower() if ch.isalnum())
        if key in ("fixday", "fixedday", "fixed"):
            return cls.FIXED_DAY
        if key == "monthly4":
            return cls.MONTHLY_4
        if key in ("monthlycustom", "custom"):
            return cls.MONTHLY_CUSTOM
        raise ValueError(f"Unknown weekly-off type: {value!r}")


def weekday_name(day: date) -> str:
    """English weekday name, independent of the process locale."""
    return WEEKDAYS[day.weekday()]


def _canonical_weekday(name: str) -> str:
    cleaned = name.strip().lower()
    for weekday in WEEKDAYS:
        if weekday.lower() == cleaned or weekday[:3].lower() == cleaned:
            return weekday
    raise ValueError(f"Unknown weekday: {name!r}")


@dataclass(frozen=True)
class WeeklyOffSetting:
    """Rest-day configuration for one employee.

    Only ``Fix Day`` settings mark specific dates. ``Monthly 4`` and
    ``Monthly (Custom)`` grant a count of floating rest days per month
    (``monthly_count``) that the attendance preparer allocates by hand.
    """

    employee_code: str
    days: frozenset[str] = field(default_factory=frozenset)
    type: WeeklyOffType = WeeklyOffType.FIXED_DAY
    sandwich_rule: bool = False
    effective_from: date | None = None
    monthly_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "days", frozenset(_canonical_weekday(d) for d in self.days)
        )
        if self.type == WeeklyOffType.MONTHLY_4 and not self.monthly_count:
            object.__setattr__(self, "monthly_count", 4)

    def is_weekly_off(self, day: date) -> bool:
        if self.type != WeeklyOffType.FIXED_DAY:
            return False
        if self.effective_from is not None and day < self.effective_from:
            return False
        return weekday_name(day) in self.days


class WeeklyOffCalendar:
    """Looks up rest days for any employee; employees without a setting have none."""

    def __init__(self, settings: Iterable[WeeklyOffSetting] = ()):
        self._settings: dict[str, WeeklyOffSetting] = {}
        for setting in settings:
            # Later rows replace earlier ones for the same employee.
            self._settings[setting.employee_code] = setting

    @classmethod
    def from_mapping(cls, days_by_employee: Mapping[str, Iterable[str]]) -> WeeklyOffCalendar:
        """Build a fixed-day calendar from ``{employee_code: [weekday, ...]}``."""
        return cls(
            WeeklyOffSetting(employee_code=code, days=frozenset(days))
            for code, days in days_by_employee.items()
        )

    def setting_for(self, employee_code: str) -> WeeklyOffSetting | None:
        return self._settings.get(employee_code)

    def is_weekly_off(self, employee_code: str, day: date) -> bool:
        setting = self._settings.get(employee_code)
        if setting is None:
            return False
        return setting.is_weekly_off(day)

    def uses_sandwich_rule(self, employee_code: str) -> bool:
        setting = self._settings.get(employee_code)
        return bool(setting and setting.sandwich_rule)
