"""Monthly salary record and payroll adjustment models."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import CheckConstraint, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.models.base import Base, JSONType, TimestampMixin

# Composite key shared by every per-employee-month table
PERIOD_KEY = ("employee_code", "month", "year")


class MonthlySalaryRecord(Base, TimestampMixin):
    """Persisted payroll for one employee-month.

    ``status`` is the only concurrency gate. ``salary_data`` holds the
    snapshot computed at lock time and is left untouched by unlock.
    """

    __tablename__ = "monthly_salary_record"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    employee_name: Mapped[str | None] = mapped_column(String(255))
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Open")
    salary_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    net_pay: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    __table_args__ = (
        UniqueConstraint(*PERIOD_KEY, name="monthly_salary_record_period_unique"),
        CheckConstraint(
            "status IN ('Open', 'Locked')",
            name="monthly_salary_record_status_check",
        ),
    )

    @property
    def is_locked(self) -> bool:
        return self.status == "Locked"


class PayrollAdjustmentRecord(Base, TimestampMixin):
    """User-entered adjustments for one employee-month."""

    __tablename__ = "payroll_adjustment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    arrear_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    other_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    advance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(*PERIOD_KEY, name="payroll_adjustment_period_unique"),
        CheckConstraint(
            "arrear_amount >= 0 AND other_deduction >= 0 AND tds >= 0 AND advance >= 0",
            name="payroll_adjustment_non_negative_check",
        ),
    )
