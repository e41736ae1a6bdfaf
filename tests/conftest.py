"""Pytest fixtures for payroll calculation tests."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.calculators.types import (
    AttendanceEvent,
    AttendanceType,
    ContractCategory,
    EmployeeCompensationProfile,
    PayPeriod,
    PayrollCalculationRequest,
)
from payroll_calc.models import Base
from payroll_calc.rules import (
    ContributionPayer,
    ContributionScheme,
    InMemoryRuleTableProvider,
    OvertimeTier,
    RuleTableVersion,
    TaxBracket,
)

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)
MARCH_2024 = PayPeriod(2024, 3)


@pytest.fixture
def rules() -> RuleTableVersion:
    """Monthly rule table used by the golden-value scenario."""
    return RuleTableVersion(
        version_id="TEST-2024.1",
        effective_start=date(2024, 1, 1),
        effective_end=None,
        minimum_wage=Decimal("60000"),
        tax_brackets=(
            TaxBracket(lower_bound=Decimal("0"), rate=Decimal("0")),
            TaxBracket(lower_bound=Decimal("100000"), rate=Decimal("0.10")),
            TaxBracket(lower_bound=Decimal("200000"), rate=Decimal("0.20")),
        ),
        contributions=(
            ContributionScheme(
                code="PENSION",
                name="Pension",
                rate=Decimal("0.06"),
                ceiling=Decimal("1800000"),
            ),
            ContributionScheme(
                code="HEALTH",
                name="Health insurance",
                rate=Decimal("0.07"),
                ceiling=Decimal("100000"),
            ),
            ContributionScheme(
                code="FAMILY",
                name="Family allowance",
                rate=Decimal("0.07"),
                ceiling=Decimal("1800000"),
                payer=ContributionPayer.EMPLOYER,
            ),
        ),
        overtime_tiers=(
            OvertimeTier(hour_range_start=Decimal("0"), multiplier=Decimal("1.25")),
            OvertimeTier(hour_range_start=Decimal("8"), multiplier=Decimal("1.50")),
        ),
        overtime_cap_hours=Decimal("40"),
    )


@pytest.fixture
def provider(rules: RuleTableVersion) -> InMemoryRuleTableProvider:
    return InMemoryRuleTableProvider([rules])


@pytest.fixture
def assembler() -> PayrollRecordAssembler:
    """Engine with a fixed clock."""
    return PayrollRecordAssembler(engine_version="1.0.0", clock=lambda: FIXED_NOW)


@pytest.fixture
def period() -> PayPeriod:
    return MARCH_2024


@pytest.fixture
def make_profile() -> Callable[..., EmployeeCompensationProfile]:
    """Factory for compensation profiles (150,000 base, 160h month by default)."""

    def _make(**overrides) -> EmployeeCompensationProfile:
        values = {
            "employee_id": "EMP-001",
            "base_salary": Decimal("150000"),
            "contract_category": ContractCategory.PERMANENT,
            "scheduled_weekly_hours": Decimal("40"),
            "scheduled_monthly_hours": Decimal("160"),
        }
        values.update(overrides)
        return EmployeeCompensationProfile(**values)

    return _make


@pytest.fixture
def make_event() -> Callable[..., AttendanceEvent]:
    """Factory for attendance days on an 08:00-16:00 schedule without break."""

    def _make(
        work_date: date,
        attendance_type: AttendanceType = AttendanceType.PRESENT,
        actual: tuple[str, str] | None = ("08:00", "16:00"),
        scheduled: tuple[str, str] | None = ("08:00", "16:00"),
        **extra,
    ) -> AttendanceEvent:
        return AttendanceEvent(
            work_date=work_date,
            attendance_type=attendance_type,
            scheduled_start=time.fromisoformat(scheduled[0]) if scheduled else None,
            scheduled_end=time.fromisoformat(scheduled[1]) if scheduled else None,
            actual_start=time.fromisoformat(actual[0]) if actual else None,
            actual_end=time.fromisoformat(actual[1]) if actual else None,
            **extra,
        )

    return _make


@pytest.fixture
def golden_request(make_profile, make_event) -> PayrollCalculationRequest:
    """150,000 base, 160h month, one day with 3 overtime hours."""
    return PayrollCalculationRequest(
        profile=make_profile(),
        period=MARCH_2024,
        attendance=(
            make_event(date(2024, 3, 4)),
            make_event(date(2024, 3, 5), actual=("08:00", "19:00")),
            make_event(date(2024, 3, 6)),
        ),
    )


@pytest.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    """Create a database session on a fresh in-memory database."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()
