"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_calc.calculators.types import (
    Allowance,
    AllowanceKind,
    AttendanceEvent,
    AttendanceType,
    ContractCategory,
    EmployeeCompensationProfile,
    PayPeriod,
    PayrollCalculationRequest,
    PayrollCalculationResult,
)


# ============================================================================
# Request schemas
# ============================================================================


class ProfileIn(BaseModel):
    """Employee compensation terms."""

    employee_id: str = Field(min_length=1, max_length=64)
    base_salary: Decimal = Field(ge=0)
    contract_category: ContractCategory
    scheduled_weekly_hours: Decimal = Field(gt=0)
    scheduled_monthly_hours: Decimal | None = Field(default=None, gt=0)
    hire_date: date | None = None
    termination_date: date | None = None

    def to_domain(self) -> EmployeeCompensationProfile:
        return EmployeeCompensationProfile(
            employee_id=self.employee_id,
            base_salary=self.base_salary,
            contract_category=self.contract_category,
            scheduled_weekly_hours=self.scheduled_weekly_hours,
            scheduled_monthly_hours=self.scheduled_monthly_hours,
            hire_date=self.hire_date,
            termination_date=self.termination_date,
        )


class AttendanceEventIn(BaseModel):
    """One day of attendance."""

    work_date: date
    attendance_type: AttendanceType
    scheduled_start: time | None = None
    scheduled_end: time | None = None
    actual_start: time | None = None
    actual_end: time | None = None
    break_minutes: int = Field(default=0, ge=0)
    paid: bool | None = None

    def to_domain(self) -> AttendanceEvent:
        return AttendanceEvent(**self.model_dump())


class AllowanceIn(BaseModel):
    """Allowance or bonus."""

    code: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(ge=0)
    kind: AllowanceKind = AllowanceKind.ALLOWANCE

    def to_domain(self) -> Allowance:
        return Allowance(code=self.code, amount=self.amount, kind=self.kind)


class CalculationRequest(BaseModel):
    """Schema for a payroll calculation request."""

    profile: ProfileIn
    period: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$", examples=["2024-03"])
    attendance: list[AttendanceEventIn] = Field(default_factory=list)
    allowances: list[AllowanceIn] = Field(default_factory=list)
    effective_date: date | None = None

    def to_domain(self) -> PayrollCalculationRequest:
        return PayrollCalculationRequest(
            profile=self.profile.to_domain(),
            period=PayPeriod.parse(self.period),
            attendance=tuple(e.to_domain() for e in self.attendance),
            allowances=tuple(a.to_domain() for a in self.allowances),
            effective_date=self.effective_date,
        )


# ============================================================================
# Response schemas
# ============================================================================


class OvertimeTierOut(BaseModel):
    hour_range_start: Decimal
    hours: Decimal
    multiplier: Decimal


class OvertimeCategoryOut(BaseModel):
    category: str
    hours: Decimal
    multiplier: Decimal


class ContributionOut(BaseModel):
    """Schema for one social contribution line."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    payer: str
    base: Decimal
    rate: Decimal
    amount: Decimal


class LineItemOut(BaseModel):
    """Schema for a signed payslip line."""

    line_type: str
    code: str
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None


class ViolationOut(BaseModel):
    rule_name: str
    severity: str
    message: str
    offending_value: str | None = None


class ProvenanceOut(BaseModel):
    """How the result was produced."""

    rule_table_version_id: str
    inputs_hash: str
    engine_version: str
    calculation_id: UUID
    calculated_at: datetime


class AttendanceSummaryOut(BaseModel):
    scheduled_hours: Decimal
    worked_hours: Decimal
    overtime_hours: Decimal
    delay_minutes: int
    late_days: int
    early_departure_minutes: int
    unauthorized_absence_days: Decimal
    unpaid_leave_days: Decimal
    paid_leave_days: Decimal
    days_recorded: int


class CalculationResponse(BaseModel):
    """Schema for a payroll calculation result."""

    employee_id: str
    period: str
    contract_category: ContractCategory
    currency: str
    base_salary: Decimal
    regular_pay: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    overtime_tiers: list[OvertimeTierOut]
    overtime_categories: list[OvertimeCategoryOut]
    allowances_total: Decimal
    bonuses_total: Decimal
    delay_penalty: Decimal
    absence_deduction: Decimal
    gross_salary: Decimal
    income_tax: Decimal
    contributions: list[ContributionOut]
    total_deductions: Decimal
    net_salary: Decimal
    employer_contributions_total: Decimal
    attendance: AttendanceSummaryOut
    lines: list[LineItemOut]
    violations: list[ViolationOut]
    provenance: ProvenanceOut
    result_fingerprint: str

    @classmethod
    def from_result(cls, result: PayrollCalculationResult) -> "CalculationResponse":
        summary = result.attendance
        return cls(
            employee_id=result.employee_id,
            period=str(result.period),
            contract_category=result.contract_category,
            currency=result.currency,
            base_salary=result.base_salary,
            regular_pay=result.regular_pay,
            overtime_hours=result.overtime_hours,
            overtime_pay=result.overtime_pay,
            overtime_tiers=[
                OvertimeTierOut(
                    hour_range_start=t.hour_range_start, hours=t.hours, multiplier=t.multiplier
                )
                for t in result.overtime_tiers
            ],
            overtime_categories=[
                OvertimeCategoryOut(
                    category=c.category.value, hours=c.hours, multiplier=c.multiplier
                )
                for c in result.overtime_categories
            ],
            allowances_total=result.allowances_total,
            bonuses_total=result.bonuses_total,
            delay_penalty=result.delay_penalty,
            absence_deduction=result.absence_deduction,
            gross_salary=result.gross_salary,
            income_tax=result.income_tax,
            contributions=[ContributionOut.model_validate(c) for c in result.contributions],
            total_deductions=result.total_deductions,
            net_salary=result.net_salary,
            employer_contributions_total=result.employer_contributions_total,
            attendance=AttendanceSummaryOut(
                scheduled_hours=summary.scheduled_hours,
                worked_hours=summary.worked_hours,
                overtime_hours=summary.overtime_hours,
                delay_minutes=summary.delay_minutes,
                late_days=summary.late_days,
                early_departure_minutes=summary.early_departure_minutes,
                unauthorized_absence_days=summary.unauthorized_absence_days,
                unpaid_leave_days=summary.unpaid_leave_days,
                paid_leave_days=summary.paid_leave_days,
                days_recorded=summary.days_recorded,
            ),
            lines=[
                LineItemOut(
                    line_type=line.line_type.value,
                    code=line.code,
                    amount=line.amount,
                    quantity=line.quantity,
                    rate=line.rate,
                    explanation=line.explanation,
                )
                for line in result.lines
            ],
            violations=[ViolationOut(**v.to_dict()) for v in result.violations],
            provenance=ProvenanceOut(
                rule_table_version_id=result.provenance.rule_table_version_id,
                inputs_hash=result.provenance.inputs_hash,
                engine_version=result.provenance.engine_version,
                calculation_id=result.provenance.calculation_id,
                calculated_at=result.provenance.calculated_at,
            ),
            result_fingerprint=result.result_fingerprint,
        )


class RuleTableResponse(BaseModel):
    """Schema for a rule table version as stored."""

    version_id: str
    effective_start: date
    effective_end: date | None = None
    payload: dict[str, Any]


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    problems: list[str] | None = None
    violations: list[ViolationOut] | None = None
