"""Attendance threshold configuration model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.models.base import Base, JSONType, TimestampMixin

RULE_SET_ID = 1


class AttendanceRuleSetRecord(Base, TimestampMixin):
    """The single threshold configuration row (id is always 1)."""

    __tablename__ = "attendance_rule_set"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=RULE_SET_ID)
    in_grace_period: Mapped[int] = mapped_column(Integer, nullable=False, default=13)
    out_grace_period: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    late_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=13)
    in_short_leave_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    out_short_leave_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    in_half_day_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    out_half_day_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=240)
    compounding_rules: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    __table_args__ = (
        CheckConstraint(f"id = {RULE_SET_ID}", name="attendance_rule_set_singleton_check"),
    )
