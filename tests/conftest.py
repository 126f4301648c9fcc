"""Pytest fixtures for attendance payroll tests."""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from attendance_payroll.attendance.summary import build_summary
from attendance_payroll.attendance.types import CompoundingRule, ShiftSchedule, ThresholdRuleSet
from attendance_payroll.calculators.types import (
    EmployeeInfo,
    SalaryComponent,
    SalaryStructure,
)
from attendance_payroll.models import Base

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database engine with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def rules() -> ThresholdRuleSet:
    """Threshold rules used throughout the tests."""
    return ThresholdRuleSet(
        in_grace_period=13,
        out_grace_period=5,
        late_threshold=15,
        in_short_leave_threshold=30,
        out_short_leave_threshold=60,
        in_half_day_threshold=120,
        out_half_day_threshold=240,
        compounding_rules=(CompoundingRule("SL", "P", "SL"),),
    )


@pytest.fixture
def shift() -> ShiftSchedule:
    return ShiftSchedule.from_strings("10:00", "19:00")


@pytest.fixture
def employee() -> EmployeeInfo:
    return EmployeeInfo(
        employee_code="EMP001",
        employee_name="Asha Verma",
        designation="Accountant",
        department="Finance",
    )


@pytest.fixture
def structure() -> SalaryStructure:
    """30,000 monthly gross with a typical breakdown."""
    return SalaryStructure(
        employee_code="EMP001",
        monthly_gross=Decimal("30000"),
        earnings_breakdown=(
            SalaryComponent("Basic Salary", Decimal("15000")),
            SalaryComponent("HRA", Decimal("7500")),
            SalaryComponent("Special Allowance", Decimal("7500")),
        ),
        deductions_breakdown=(
            SalaryComponent("EPF", Decimal("1800")),
            SalaryComponent("ESIC", Decimal("225")),
        ),
        employer_additional_breakdown=(
            SalaryComponent("EPF", Decimal("1800")),
            SalaryComponent("ESIC", Decimal("975")),
        ),
    )


@pytest.fixture
def attendance():
    """27 paid days and 2 arrear days in a 30-day month."""
    return build_summary(
        "EMP001", "June", 2025, week_off=4, present=21, leave=2, arrear_days=2
    )
