"""Type definitions for calculation pipeline."""

from __future__ import annotations

import calendar
import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_calc.rules.types import OvertimeCategory

MINUTES_PER_HOUR = Decimal("60")


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def _canonical_decimal(value: Decimal | None) -> str | None:
    """Exponent-free text, so 150000 and 150000.00 hash alike."""
    if value is None:
        return None
    normalized = value.normalize()
    if normalized.is_zero():
        return "0"
    return format(normalized, "f")


@dataclass(frozen=True, order=True)
class PayPeriod:
    """Calendar month a payroll is calculated for."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {self.month}")
        if not 1900 <= self.year <= 9999:
            raise ValueError(f"year out of range: {self.year}")

    @classmethod
    def parse(cls, value: str) -> PayPeriod:
        """Parse 'YYYY-MM'."""
        year, _, month = value.partition("-")
        return cls(int(year), int(month))

    @classmethod
    def containing(cls, day: date) -> PayPeriod:
        return cls(day.year, day.month)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def days(self) -> list[date]:
        last = calendar.monthrange(self.year, self.month)[1]
        return [date(self.year, self.month, d) for d in range(1, last + 1)]

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class ContractCategory(str, Enum):
    """Employment contract categories."""

    PERMANENT = "PERMANENT"
    FIXED_TERM = "FIXED_TERM"
    PROBATION = "PROBATION"
    INTERN = "INTERN"


class AttendanceType(str, Enum):
    """Daily attendance types."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    UNAUTHORIZED_ABSENCE = "UNAUTHORIZED_ABSENCE"
    AUTHORIZED_ABSENCE = "AUTHORIZED_ABSENCE"
    SICK_LEAVE = "SICK_LEAVE"
    VACATION = "VACATION"

    @property
    def is_presence(self) -> bool:
        return self in (AttendanceType.PRESENT, AttendanceType.LATE, AttendanceType.HALF_DAY)

    @property
    def is_leave(self) -> bool:
        return self in (
            AttendanceType.AUTHORIZED_ABSENCE,
            AttendanceType.SICK_LEAVE,
            AttendanceType.VACATION,
        )

    @property
    def is_unauthorized(self) -> bool:
        return self in (AttendanceType.ABSENT, AttendanceType.UNAUTHORIZED_ABSENCE)


class AllowanceKind(str, Enum):
    ALLOWANCE = "ALLOWANCE"
    BONUS = "BONUS"


class Severity(str, Enum):
    """Validation violation severity."""

    BLOCKING = "BLOCKING"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass(frozen=True)
class EmployeeCompensationProfile:
    """Contractual terms supplied by the caller."""

    employee_id: str
    base_salary: Decimal
    contract_category: ContractCategory
    scheduled_weekly_hours: Decimal
    scheduled_monthly_hours: Decimal | None = None  # None = weekly * 52 / 12
    hire_date: date | None = None
    termination_date: date | None = None

    @property
    def monthly_hours(self) -> Decimal:
        """Scheduled hours in a month, the hourly rate divisor."""
        if self.scheduled_monthly_hours is not None:
            return self.scheduled_monthly_hours
        return self.scheduled_weekly_hours * Decimal("52") / Decimal("12")

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_id": self.employee_id,
            "base_salary": _canonical_decimal(self.base_salary),
            "contract_category": self.contract_category.value,
            "scheduled_weekly_hours": _canonical_decimal(self.scheduled_weekly_hours),
            "scheduled_monthly_hours": _canonical_decimal(self.scheduled_monthly_hours),
            "hire_date": _str_or_none(self.hire_date),
            "termination_date": _str_or_none(self.termination_date),
        }


@dataclass(frozen=True)
class AttendanceEvent:
    """One day of attendance for one employee."""

    work_date: date
    attendance_type: AttendanceType
    scheduled_start: time | None = None
    scheduled_end: time | None = None
    actual_start: time | None = None
    actual_end: time | None = None
    break_minutes: int = 0
    paid: bool | None = None  # Overrides the type's default paid status

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "attendance_type": self.attendance_type.value,
            "scheduled_start": _str_or_none(self.scheduled_start),
            "scheduled_end": _str_or_none(self.scheduled_end),
            "actual_start": _str_or_none(self.actual_start),
            "actual_end": _str_or_none(self.actual_end),
            "break_minutes": self.break_minutes,
            "paid": self.paid,
        }


@dataclass(frozen=True)
class Allowance:
    """Allowance or bonus, already validated by the caller."""

    code: str
    amount: Decimal
    kind: AllowanceKind = AllowanceKind.ALLOWANCE

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "amount": _canonical_decimal(self.amount),
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class PayrollCalculationRequest:
    """Everything one calculation consumes besides the rule table."""

    profile: EmployeeCompensationProfile
    period: PayPeriod
    attendance: tuple[AttendanceEvent, ...] = ()
    allowances: tuple[Allowance, ...] = ()
    effective_date: date | None = None  # None = last day of the period

    @property
    def resolved_effective_date(self) -> date:
        return self.effective_date or self.period.end

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile.to_canonical_dict(),
            "period": str(self.period),
            "attendance": sorted(
                (e.to_canonical_dict() for e in self.attendance),
                key=lambda e: e["work_date"],
            ),
            "allowances": sorted(
                (a.to_canonical_dict() for a in self.allowances),
                key=lambda a: (a["kind"], a["code"], a["amount"]),
            ),
            "effective_date": self.resolved_effective_date.isoformat(),
        }


@dataclass(frozen=True)
class AttendanceSummary:
    """Period totals derived from attendance events.

    Durations are kept in whole minutes so the aggregation is an exact,
    order-independent integer sum.
    """

    scheduled_minutes: int = 0
    worked_minutes: int = 0
    overtime_minutes: int = 0
    unauthorized_absence_days: Decimal = Decimal("0")
    unpaid_leave_days: Decimal = Decimal("0")
    paid_leave_days: Decimal = Decimal("0")
    days_recorded: int = 0
    delay_minutes_by_day: tuple[tuple[date, int], ...] = ()
    early_departure_minutes_by_day: tuple[tuple[date, int], ...] = ()
    worked_minutes_by_day: tuple[tuple[date, int], ...] = ()
    worked_minutes_by_week: tuple[tuple[str, int], ...] = ()  # ("2024-W10", minutes)
    overtime_minutes_by_week: tuple[tuple[str, int], ...] = ()
    night_overtime_minutes: int = 0
    weekend_overtime_minutes: int = 0
    holiday_overtime_minutes: int = 0

    @property
    def scheduled_hours(self) -> Decimal:
        return Decimal(self.scheduled_minutes) / MINUTES_PER_HOUR

    @property
    def worked_hours(self) -> Decimal:
        return Decimal(self.worked_minutes) / MINUTES_PER_HOUR

    @property
    def overtime_hours(self) -> Decimal:
        return Decimal(self.overtime_minutes) / MINUTES_PER_HOUR

    @property
    def overtime_hours_by_category(self) -> dict[OvertimeCategory, Decimal]:
        """Overtime hours per category; minutes in no category are omitted."""
        minutes = {
            OvertimeCategory.NIGHT: self.night_overtime_minutes,
            OvertimeCategory.WEEKEND: self.weekend_overtime_minutes,
            OvertimeCategory.HOLIDAY: self.holiday_overtime_minutes,
        }
        return {c: Decimal(m) / MINUTES_PER_HOUR for c, m in minutes.items() if m > 0}

    @property
    def delay_minutes(self) -> int:
        return sum(m for _, m in self.delay_minutes_by_day)

    @property
    def early_departure_minutes(self) -> int:
        return sum(m for _, m in self.early_departure_minutes_by_day)

    @property
    def late_days(self) -> int:
        return len(self.delay_minutes_by_day)

    @property
    def unpaid_absence_days(self) -> Decimal:
        return self.unauthorized_absence_days + self.unpaid_leave_days

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "scheduled_minutes": self.scheduled_minutes,
            "worked_minutes": self.worked_minutes,
            "overtime_minutes": self.overtime_minutes,
            "unauthorized_absence_days": _canonical_decimal(self.unauthorized_absence_days),
            "unpaid_leave_days": _canonical_decimal(self.unpaid_leave_days),
            "paid_leave_days": _canonical_decimal(self.paid_leave_days),
            "days_recorded": self.days_recorded,
            "delay_minutes_by_day": [[d.isoformat(), m] for d, m in self.delay_minutes_by_day],
            "early_departure_minutes_by_day": [
                [d.isoformat(), m] for d, m in self.early_departure_minutes_by_day
            ],
            "worked_minutes_by_day": [[d.isoformat(), m] for d, m in self.worked_minutes_by_day],
            "worked_minutes_by_week": [[w, m] for w, m in self.worked_minutes_by_week],
            "overtime_minutes_by_week": [[w, m] for w, m in self.overtime_minutes_by_week],
            "night_overtime_minutes": self.night_overtime_minutes,
            "weekend_overtime_minutes": self.weekend_overtime_minutes,
            "holiday_overtime_minutes": self.holiday_overtime_minutes,
        }


@dataclass(frozen=True)
class ValidationViolation:
    """A business-rule failure surfaced without aborting the calculation."""

    rule_name: str
    severity: Severity
    message: str
    offending_value: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "severity": self.severity.value,
            "message": self.message,
            "offending_value": self.offending_value,
        }


@dataclass(frozen=True)
class OvertimeTierLine:
    """Hours paid at one overtime tier."""

    hour_range_start: Decimal
    hours: Decimal
    multiplier: Decimal


@dataclass(frozen=True)
class OvertimeCategoryLine:
    """Hours paid at a category premium (night, weekend, holiday)."""

    category: OvertimeCategory
    hours: Decimal
    multiplier: Decimal


@dataclass(frozen=True)
class OvertimeResult:
    hours: Decimal
    hourly_rate: Decimal
    amount: Decimal
    tiers: tuple[OvertimeTierLine, ...] = ()
    categories: tuple[OvertimeCategoryLine, ...] = ()
    violations: tuple[ValidationViolation, ...] = ()


@dataclass(frozen=True)
class GrossSalaryResult:
    regular_pay: Decimal
    overtime_pay: Decimal
    allowances_total: Decimal
    bonuses_total: Decimal
    delay_penalty: Decimal
    absence_deduction: Decimal
    gross_salary: Decimal
    employment_fraction: Decimal = Decimal("1")

    @property
    def earnings_total(self) -> Decimal:
        return self.regular_pay + self.overtime_pay + self.allowances_total + self.bonuses_total


@dataclass(frozen=True)
class ContributionLine:
    """One social contribution, computed on its capped base."""

    code: str
    name: str
    payer: str  # ContributionPayer value
    base: Decimal
    rate: Decimal
    amount: Decimal

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "payer": self.payer,
            "base": _canonical_decimal(self.base),
            "rate": _canonical_decimal(self.rate),
            "amount": _canonical_decimal(self.amount),
        }


@dataclass(frozen=True)
class StatutoryDeductions:
    income_tax: Decimal
    contributions: tuple[ContributionLine, ...]
    total_deductions: Decimal  # Income tax + employee contributions
    employer_contributions_total: Decimal = Decimal("0")

    @property
    def employee_contributions(self) -> tuple[ContributionLine, ...]:
        return tuple(c for c in self.contributions if c.payer == "EMPLOYEE")

    @property
    def employer_contributions(self) -> tuple[ContributionLine, ...]:
        return tuple(c for c in self.contributions if c.payer == "EMPLOYER")


class LineType(str, Enum):
    """Payslip line types."""

    EARNING = "EARNING"
    ATTENDANCE_DEDUCTION = "ATTENDANCE_DEDUCTION"
    TAX = "TAX"
    CONTRIBUTION = "CONTRIBUTION"
    EMPLOYER_CONTRIBUTION = "EMPLOYER_CONTRIBUTION"


@dataclass(frozen=True)
class LineCandidate:
    """A payslip line, signed per LineItemBuilder conventions."""

    line_type: LineType
    code: str
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "line_type": self.line_type.value,
            "code": self.code,
            "amount": _canonical_decimal(self.amount),
            "quantity": _canonical_decimal(self.quantity),
            "rate": _canonical_decimal(self.rate),
        }


@dataclass(frozen=True)
class Provenance:
    """Metadata that lets a caller verify how a result was produced."""

    rule_table_version_id: str
    inputs_hash: str
    engine_version: str
    calculation_id: UUID
    calculated_at: datetime

    def to_canonical_dict(self) -> dict[str, Any]:
        # Excludes calculated_at, the only field allowed to differ between
        # runs over identical inputs.
        return {
            "rule_table_version_id": self.rule_table_version_id,
            "inputs_hash": self.inputs_hash,
            "engine_version": self.engine_version,
            "calculation_id": str(self.calculation_id),
        }


@dataclass(frozen=True)
class PayrollCalculationResult:
    """Immutable payroll record for one employee and period."""

    employee_id: str
    period: PayPeriod
    contract_category: ContractCategory
    currency: str
    base_salary: Decimal
    regular_pay: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    overtime_tiers: tuple[OvertimeTierLine, ...]
    allowances_total: Decimal
    bonuses_total: Decimal
    delay_penalty: Decimal
    absence_deduction: Decimal
    gross_salary: Decimal
    income_tax: Decimal
    contributions: tuple[ContributionLine, ...]
    total_deductions: Decimal
    net_salary: Decimal
    employer_contributions_total: Decimal
    attendance: AttendanceSummary
    provenance: Provenance
    lines: tuple[LineCandidate, ...] = ()
    violations: tuple[ValidationViolation, ...] = field(default=())
    overtime_categories: tuple[OvertimeCategoryLine, ...] = ()

    @property
    def employee_contributions(self) -> tuple[ContributionLine, ...]:
        return tuple(c for c in self.contributions if c.payer == "EMPLOYEE")

    @property
    def has_warnings(self) -> bool:
        return any(v.severity == Severity.WARNING for v in self.violations)

    def monetary_fields(self) -> dict[str, Decimal]:
        """Every monetary amount on the result, by name."""
        fields = {
            "base_salary": self.base_salary,
            "regular_pay": self.regular_pay,
            "overtime_pay": self.overtime_pay,
            "allowances_total": self.allowances_total,
            "bonuses_total": self.bonuses_total,
            "delay_penalty": self.delay_penalty,
            "absence_deduction": self.absence_deduction,
            "gross_salary": self.gross_salary,
            "income_tax": self.income_tax,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
            "employer_contributions_total": self.employer_contributions_total,
        }
        for line in self.contributions:
            fields[f"contribution:{line.code}"] = line.amount
        return fields

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict of everything except the calculation timestamp."""
        return {
            "employee_id": self.employee_id,
            "period": str(self.period),
            "contract_category": self.contract_category.value,
            "currency": self.currency,
            "base_salary": _canonical_decimal(self.base_salary),
            "regular_pay": _canonical_decimal(self.regular_pay),
            "overtime_hours": _canonical_decimal(self.overtime_hours),
            "overtime_pay": _canonical_decimal(self.overtime_pay),
            "overtime_tiers": [
                [
                    _canonical_decimal(t.hour_range_start),
                    _canonical_decimal(t.hours),
                    _canonical_decimal(t.multiplier),
                ]
                for t in self.overtime_tiers
            ],
            "overtime_categories": [
                [c.category.value, _canonical_decimal(c.hours), _canonical_decimal(c.multiplier)]
                for c in self.overtime_categories
            ],
            "allowances_total": _canonical_decimal(self.allowances_total),
            "bonuses_total": _canonical_decimal(self.bonuses_total),
            "delay_penalty": _canonical_decimal(self.delay_penalty),
            "absence_deduction": _canonical_decimal(self.absence_deduction),
            "gross_salary": _canonical_decimal(self.gross_salary),
            "income_tax": _canonical_decimal(self.income_tax),
            "contributions": [c.to_canonical_dict() for c in self.contributions],
            "total_deductions": _canonical_decimal(self.total_deductions),
            "net_salary": _canonical_decimal(self.net_salary),
            "employer_contributions_total": _canonical_decimal(self.employer_contributions_total),
            "attendance": self.attendance.to_canonical_dict(),
            "provenance": self.provenance.to_canonical_dict(),
            "lines": [line.to_canonical_dict() for line in self.lines],
            "violations": [v.to_dict() for v in self.violations],
        }

    @property
    def result_fingerprint(self) -> str:
        """Hash of the canonical result; equal for equal inputs and rules."""
        json_str = json.dumps(self.to_canonical_dict(), sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()
