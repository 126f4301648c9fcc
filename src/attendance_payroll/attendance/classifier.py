"""Punch classification against shift times and threshold rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time

from attendance_payroll.attendance.types import PunchType, StatusCode, ThresholdRuleSet

# Sentinels the punch store and UI use for "no punch".
ABSENT_MARKERS = frozenset({"", "A", "-"})

# Lower rank = more severe; used only to break ties between equal thresholds.
SEVERITY_RANK = {
    StatusCode.HALF_DAY: 0,
    StatusCode.SHORT_LEAVE: 1,
    StatusCode.LATE: 2,
    StatusCode.EARLY_DEPARTURE: 2,
}


def parse_time_of_day(value: object) -> int | None:
    """Return minutes since midnight, or None if the value is not a time.

    Accepts ``time``/``datetime`` objects and ``HH:MM`` or ``HH:MM:SS``
    strings. Seconds are dropped.
    """
    if isinstance(value, datetime):
        return value.hour * 60 + value.minute
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.upper() in ABSENT_MARKERS:
        return None

    parts = text.split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        if len(parts) == 3:
            int(parts[2])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def normalize_punch_time(value: object) -> str | None:
    """Normalize a punch to ``HH:MM``; anything unusable becomes absent (None)."""
    minutes = parse_time_of_day(value)
    if minutes is None:
        return None
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class ThresholdStep:
    """One rung of a threshold ladder.

    ``inclusive`` steps match ``diff >= minutes``; exclusive ones (grace
    periods) match ``diff > minutes``.
    """

    minutes: int
    status: StatusCode
    inclusive: bool = True

    @property
    def effective_minutes(self) -> int:
        """Smallest whole-minute difference that satisfies this step."""
        return self.minutes if self.inclusive else self.minutes + 1

    def is_satisfied(self, diff: int) -> bool:
        if self.inclusive:
            return diff >= self.minutes
        return diff > self.minutes


def _ordered(steps: list[ThresholdStep]) -> tuple[ThresholdStep, ...]:
    """Largest threshold first; equal thresholds resolve to the more severe code."""
    return tuple(
        sorted(steps, key=lambda s: (-s.effective_minutes, SEVERITY_RANK[s.status]))
    )


def build_in_ladder(rules: ThresholdRuleSet) -> tuple[ThresholdStep, ...]:
    """Threshold ladder for IN punches (diff = punch - shift start)."""
    return _ordered([
        ThresholdStep(rules.in_half_day_threshold, StatusCode.HALF_DAY),
        ThresholdStep(rules.in_short_leave_threshold, StatusCode.SHORT_LEAVE),
        ThresholdStep(rules.late_threshold, StatusCode.LATE),
        ThresholdStep(rules.in_grace_period, StatusCode.LATE, inclusive=False),
    ])


def build_out_ladder(rules: ThresholdRuleSet) -> tuple[ThresholdStep, ...]:
    """Threshold ladder for OUT punches (diff = shift end - punch)."""
    return _ordered([
        ThresholdStep(rules.out_half_day_threshold, StatusCode.HALF_DAY),
        ThresholdStep(rules.out_short_leave_threshold, StatusCode.SHORT_LEAVE),
        ThresholdStep(rules.out_grace_period, StatusCode.EARLY_DEPARTURE, inclusive=False),
    ])


class AttendanceClassifier:
    """Maps one (punch time, shift time, direction) triple to a status code.

    Each direction has an explicit ladder of ``(minutes, code)`` steps
    evaluated from the largest threshold down; the first satisfied step wins.
    A punch 160 minutes late therefore classifies as ``HD`` even though the
    short-leave and late thresholds are also exceeded. No step satisfied
    means ``P``. The classifier never raises: unusable punch values are
    treated as absent.
    """

    def __init__(self, rules: ThresholdRuleSet):
        self.rules = rules
        self.in_ladder = build_in_ladder(rules)
        self.out_ladder = build_out_ladder(rules)

    def classify(
        self,
        punch_time: object,
        shift_time: object,
        direction: PunchType | str,
    ) -> StatusCode:
        """Classify a single punch."""
        punch_minutes = parse_time_of_day(punch_time)
        if punch_minutes is None:
            return StatusCode.ABSENT

        shift_minutes = parse_time_of_day(shift_time)
        if shift_minutes is None:
            return StatusCode.ABSENT

        try:
            punch_type = PunchType(str(getattr(direction, "value", direction)).strip().upper())
        except ValueError:
            return StatusCode.ABSENT

        if punch_type == PunchType.IN:
            diff = punch_minutes - shift_minutes
            ladder = self.in_ladder
        else:
            diff = shift_minutes - punch_minutes
            ladder = self.out_ladder

        for step in ladder:
            if step.is_satisfied(diff):
                return step.status
        return StatusCode.PRESENT


def classify_punch(
    punch_time: object,
    shift_time: object,
    direction: PunchType | str,
    rules: ThresholdRuleSet,
) -> StatusCode:
    """Convenience wrapper around :class:`AttendanceClassifier`."""
    return AttendanceClassifier(rules).classify(punch_time, shift_time, direction)
