"""Pydantic schemas for collaborator data contracts.

Field names follow the collaborators' wire format. Missing numbers become
0 and missing lists become empty so partial rows still parse.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from attendance_payroll.attendance.summary import MonthlyAttendanceSummary
from attendance_payroll.attendance.types import (
    CompoundingRule,
    PunchType,
    RawPunchEvent,
    ThresholdRuleSet,
)
from attendance_payroll.attendance.weekly_off import WeeklyOffSetting, WeeklyOffType
from attendance_payroll.calculators.loans import LoanRecord
from attendance_payroll.calculators.types import (
    EmployeeInfo,
    PayrollAdjustment,
    SalaryComponent,
    SalaryStructure,
)
from attendance_payroll.periods import month_name

logger = logging.getLogger(__name__)


def _zero_if_blank(value: Any) -> Any:
    return 0 if value is None or value == "" else value


# Decimal that reads a missing or blank value as 0
Amount = Annotated[Decimal, BeforeValidator(_zero_if_blank)]


# ============================================================================
# Attendance
# ============================================================================


class PunchSchema(BaseModel):
    """Raw punch row."""

    employee_code: str
    punch_time: datetime
    punch_type: PunchType

    def to_domain(self) -> RawPunchEvent:
        return RawPunchEvent(
            employee_code=self.employee_code,
            punch_time=self.punch_time,
            punch_type=self.punch_type,
        )


def parse_punches(rows: Iterable[dict[str, Any]]) -> list[RawPunchEvent]:
    """Parse punch rows, skipping rows that do not validate."""
    events: list[RawPunchEvent] = []
    for row in rows:
        try:
            events.append(PunchSchema.model_validate(row).to_domain())
        except ValidationError:
            logger.warning("Skipping malformed punch row %r", row)
    return events


class CompoundingRuleSchema(BaseModel):
    in_status: str
    out_status: str
    result_status: str


class ThresholdConfigSchema(BaseModel):
    """The single threshold configuration row."""

    model_config = ConfigDict(from_attributes=True)

    in_grace_period: int = Field(default=13, ge=0)
    out_grace_period: int = Field(default=5, ge=0)
    late_threshold: int = Field(default=13, ge=0)
    in_short_leave_threshold: int = Field(default=30, ge=0)
    out_short_leave_threshold: int = Field(default=120, ge=0)
    in_half_day_threshold: int = Field(default=120, ge=0)
    out_half_day_threshold: int = Field(default=240, ge=0)
    compounding_rules: list[CompoundingRuleSchema] = Field(default_factory=list)

    @field_validator("compounding_rules", mode="before")
    @classmethod
    def _rules_default(cls, value: Any) -> Any:
        return value or []

    def to_domain(self) -> ThresholdRuleSet:
        return ThresholdRuleSet(
            **{name: getattr(self, name) for name in ThresholdRuleSet.THRESHOLD_FIELDS},
            compounding_rules=tuple(
                CompoundingRule(r.in_status, r.out_status, r.result_status)
                for r in self.compounding_rules
            ),
        )


class WeeklyOffSchema(BaseModel):
    """Weekly-off configuration row."""

    employee_code: str
    days: list[str] = Field(default_factory=list)
    type: str | None = None
    sandwich_rule: bool = False
    effective_from: date | None = None
    monthly_count: int = 0

    @field_validator("days", mode="before")
    @classmethod
    def _days_default(cls, value: Any) -> Any:
        return value or []

    def to_domain(self) -> WeeklyOffSetting:
        return WeeklyOffSetting(
            employee_code=self.employee_code,
            days=frozenset(self.days),
            type=WeeklyOffType.parse(self.type),
            sandwich_rule=self.sandwich_rule,
            effective_from=self.effective_from,
            monthly_count=self.monthly_count,
        )


class AttendanceSummarySchema(BaseModel):
    """Prepared monthly attendance counts."""

    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    month: str
    year: int
    holiday: Amount = Decimal("0")
    week_off: Amount = Decimal("0")
    present: Amount = Decimal("0")
    lwp: Amount = Decimal("0")
    leave: Amount = Decimal("0")
    arrear_days: Amount = Decimal("0")
    total_paid_days: Amount = Decimal("0")

    @field_validator("month")
    @classmethod
    def _full_month_name(cls, value: str) -> str:
        return month_name(value)

    def to_domain(self) -> MonthlyAttendanceSummary:
        return MonthlyAttendanceSummary(**self.model_dump())


# ============================================================================
# Payroll
# ============================================================================


class SalaryComponentSchema(BaseModel):
    name: str
    amount: Amount = Field(default=Decimal("0"), ge=0)


class SalaryStructureSchema(BaseModel):
    """Employee salary structure."""

    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    monthly_gross: Amount = Decimal("0")
    earnings_breakdown: list[SalaryComponentSchema] = Field(default_factory=list)
    deductions_breakdown: list[SalaryComponentSchema] = Field(default_factory=list)
    employer_additional_breakdown: list[SalaryComponentSchema] = Field(default_factory=list)

    @field_validator(
        "earnings_breakdown",
        "deductions_breakdown",
        "employer_additional_breakdown",
        mode="before",
    )
    @classmethod
    def _list_default(cls, value: Any) -> Any:
        return value or []

    def to_domain(self) -> SalaryStructure:
        def components(items: list[SalaryComponentSchema]) -> tuple[SalaryComponent, ...]:
            return tuple(SalaryComponent(c.name, c.amount) for c in items)

        return SalaryStructure(
            employee_code=self.employee_code,
            monthly_gross=self.monthly_gross,
            earnings_breakdown=components(self.earnings_breakdown),
            deductions_breakdown=components(self.deductions_breakdown),
            employer_additional_breakdown=components(self.employer_additional_breakdown),
        )


class LoanSchema(BaseModel):
    """Staff loan row."""

    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    amount: Amount = Decimal("0")
    installment_amount: Amount = Decimal("0")
    repayment_start_date: date | None = None
    disbursement_date: date | None = None
    status: str = "Pending"
    loan_type: str = "Loan"

    def to_domain(self) -> LoanRecord:
        return LoanRecord(
            employee_code=self.employee_code,
            total_amount=self.amount,
            installment_amount=self.installment_amount,
            repayment_start_date=self.repayment_start_date,
            status=self.status,
            disbursement_date=self.disbursement_date,
            loan_type=self.loan_type,
        )


class PayrollAdjustmentSchema(BaseModel):
    """Monthly adjustment as edited on the salary preparation screen."""

    model_config = ConfigDict(populate_by_name=True)

    arrear_amount: Amount = Field(default=Decimal("0"), alias="arrearAmount", ge=0)
    other_deduction: Amount = Field(default=Decimal("0"), alias="otherDeduction", ge=0)
    tds: Amount = Field(default=Decimal("0"), ge=0)
    advance: Amount = Field(default=Decimal("0"), ge=0)

    def to_domain(self) -> PayrollAdjustment:
        return PayrollAdjustment(
            arrear_amount=self.arrear_amount,
            other_deduction=self.other_deduction,
            tds=self.tds,
            advance=self.advance,
        )


class EmployeeSchema(BaseModel):
    """Employee master fields used by payroll."""

    model_config = ConfigDict(populate_by_name=True)

    employee_code: str = Field(alias="employeeCode")
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    designation: str | None = None
    department: str | None = None

    def to_domain(self) -> EmployeeInfo:
        return EmployeeInfo(
            employee_code=self.employee_code,
            employee_name=f"{self.first_name} {self.last_name}".strip(),
            designation=self.designation,
            department=self.department,
        )


class SalaryRecordSchema(BaseModel):
    """Persisted monthly salary record."""

    model_config = ConfigDict(from_attributes=True)

    employee_code: str
    employee_name: str | None = None
    month: str
    year: int
    status: str
    salary_data: dict[str, Any] | None = None
    net_pay: Decimal | None = None
