"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from payroll_calc.calculators.attendance import TimeAndAttendanceAggregator
from payroll_calc.calculators.gross import GrossSalaryComputer
from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.overtime import OvertimeCalculator
from payroll_calc.calculators.tax_calculator import StatutoryDeductionCalculator
from payroll_calc.calculators.types import (
    Allowance,
    AttendanceEvent,
    EmployeeCompensationProfile,
    LineCandidate,
    PayPeriod,
    PayrollCalculationRequest,
    PayrollCalculationResult,
    Provenance,
)
from payroll_calc.calculators.validator import BusinessRuleValidator
from payroll_calc.errors import (
    ArithmeticInconsistencyError,
    BlockingRuleViolationError,
    InvalidInputError,
)
from payroll_calc.rules.provider import RuleTableProvider
from payroll_calc.rules.types import RuleTableVersion

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_VERSION = "1.0.0"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PayrollRecordAssembler:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Validate inputs
    2) Resolve the rule table for the effective date
    3) Aggregate attendance
    4) Price overtime
    5) Compute gross (base, overtime, allowances, attendance deductions)
    6) Compute income tax and contributions
    7) Validate business rules (BLOCKING aborts)
    8) Build payslip lines and check net = gross - deductions
    9) Stamp provenance

    The assembler holds no per-calculation state; one instance can serve
    any number of threads.
    """

    def __init__(
        self,
        engine_version: str = DEFAULT_ENGINE_VERSION,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.engine_version = engine_version
        self.clock = clock
        self.aggregator = TimeAndAttendanceAggregator()
        self.overtime_calculator = OvertimeCalculator()
        self.gross_computer = GrossSalaryComputer()
        self.deduction_calculator = StatutoryDeductionCalculator()
        self.validator = BusinessRuleValidator()

    def calculate(
        self, request: PayrollCalculationRequest, provider: RuleTableProvider
    ) -> PayrollCalculationResult:
        """Calculate pay for one employee and period.

        Raises:
            InvalidInputError: Malformed compensation, attendance or allowances.
            RuleTableUnresolvedError: No rule table for the effective date.
            BlockingRuleViolationError: A BLOCKING business rule failed.
            ArithmeticInconsistencyError: An internal invariant failed.
        """
        profile = request.profile
        logger.debug("Calculating payroll for employee %s, period %s", profile.employee_id, request.period)

        problems = self.check_request(request)
        if problems:
            raise InvalidInputError(problems)

        rules = provider.resolve(request.resolved_effective_date)

        summary = self.aggregator.aggregate(request.attendance, profile, request.period, rules)
        hourly_rate = self.overtime_calculator.hourly_rate(profile)
        overtime = self.overtime_calculator.calculate(
            summary.overtime_hours,
            hourly_rate,
            rules,
            categories=summary.overtime_hours_by_category,
        )
        gross = self.gross_computer.compute(
            profile, request.period, summary, overtime, request.allowances, rules
        )
        deductions = self.deduction_calculator.calculate(gross.gross_salary, rules)
        net_salary = gross.gross_salary - deductions.total_deductions

        violations = [
            *self.validator.validate_inputs(profile, summary, rules),
            *overtime.violations,
            *self.validator.validate_result(
                profile, gross.gross_salary, net_salary, gross.employment_fraction, rules
            ),
        ]
        if any(v.is_blocking for v in violations):
            logger.info(
                "Payroll for employee %s, period %s blocked by business rules",
                profile.employee_id,
                request.period,
            )
            raise BlockingRuleViolationError(profile.employee_id, violations)

        lines = LineItemBuilder.build_lines(
            gross,
            overtime,
            deductions,
            self.gross_computer.allowance_amounts(request.allowances, rules),
        )

        inputs_hash = self.compute_inputs_hash(request, rules)
        provenance = Provenance(
            rule_table_version_id=rules.version_id,
            inputs_hash=inputs_hash,
            engine_version=self.engine_version,
            calculation_id=self.generate_calculation_id(inputs_hash),
            calculated_at=self.clock(),
        )

        result = PayrollCalculationResult(
            employee_id=profile.employee_id,
            period=request.period,
            contract_category=profile.contract_category,
            currency=rules.currency,
            base_salary=profile.base_salary,
            regular_pay=gross.regular_pay,
            overtime_hours=overtime.hours,
            overtime_pay=overtime.amount,
            overtime_tiers=overtime.tiers,
            allowances_total=gross.allowances_total,
            bonuses_total=gross.bonuses_total,
            delay_penalty=gross.delay_penalty,
            absence_deduction=gross.absence_deduction,
            gross_salary=gross.gross_salary,
            income_tax=deductions.income_tax,
            contributions=deductions.contributions,
            total_deductions=deductions.total_deductions,
            net_salary=net_salary,
            employer_contributions_total=deductions.employer_contributions_total,
            attendance=summary,
            provenance=provenance,
            lines=tuple(lines),
            violations=tuple(violations),
            overtime_categories=overtime.categories,
        )
        self.check_invariants(result, lines)

        logger.info(
            "Calculated payroll for employee %s, period %s: gross=%s net=%s (%d violation(s))",
            profile.employee_id,
            request.period,
            result.gross_salary,
            result.net_salary,
            len(violations),
        )
        return result

    def check_request(self, request: PayrollCalculationRequest) -> list[str]:
        """Return every input problem; empty when the request is usable."""
        profile = request.profile
        problems: list[str] = []

        if not profile.employee_id:
            problems.append("employee_id is required")
        if profile.base_salary < 0:
            problems.append(f"base_salary cannot be negative: {profile.base_salary}")
        if profile.scheduled_weekly_hours <= 0:
            problems.append(
                f"scheduled_weekly_hours must be positive: {profile.scheduled_weekly_hours}"
            )
        if profile.scheduled_monthly_hours is not None and profile.scheduled_monthly_hours <= 0:
            problems.append(
                f"scheduled_monthly_hours must be positive: {profile.scheduled_monthly_hours}"
            )
        if (
            profile.hire_date is not None
            and profile.termination_date is not None
            and profile.termination_date < profile.hire_date
        ):
            problems.append("termination_date cannot be before hire_date")

        for allowance in request.allowances:
            if not allowance.code:
                problems.append("allowance code is required")
            if allowance.amount < 0:
                problems.append(f"allowance {allowance.code} cannot be negative: {allowance.amount}")

        problems.extend(
            TimeAndAttendanceAggregator.check_events(request.attendance, request.period, profile)
        )
        return problems

    def check_invariants(
        self, result: PayrollCalculationResult, lines: list[LineCandidate]
    ) -> None:
        """Raise ArithmeticInconsistencyError if the result does not reconcile."""
        if result.net_salary != result.gross_salary - result.total_deductions:
            raise ArithmeticInconsistencyError(
                "net_salary",
                f"{result.net_salary} != {result.gross_salary} - {result.total_deductions}",
            )

        for name, amount in result.monetary_fields().items():
            if name != "net_salary" and amount < 0:
                raise ArithmeticInconsistencyError("non_negative", f"{name} is {amount}")

        sign_errors = LineItemBuilder.validate_line_signs(lines)
        if sign_errors:
            raise ArithmeticInconsistencyError("line_signs", "; ".join(sign_errors))

        gross_from_lines = LineItemBuilder.calculate_gross_from_lines(lines)
        if gross_from_lines != result.gross_salary:
            raise ArithmeticInconsistencyError(
                "gross_from_lines", f"{gross_from_lines} != {result.gross_salary}"
            )

        net_from_lines = LineItemBuilder.calculate_net_from_lines(lines)
        if net_from_lines != result.net_salary:
            raise ArithmeticInconsistencyError(
                "net_from_lines", f"{net_from_lines} != {result.net_salary}"
            )

    def compute_inputs_hash(
        self, request: PayrollCalculationRequest, rules: RuleTableVersion
    ) -> str:
        """SHA-256 over every input plus the rule table version id."""
        data: dict[str, Any] = {
            "request": request.to_canonical_dict(),
            "rule_table_version_id": rules.version_id,
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    def generate_calculation_id(self, inputs_hash: str) -> UUID:
        """Generate deterministic calculation ID."""
        data = {"engine_version": self.engine_version, "inputs_hash": inputs_hash}
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])


def calculate(
    profile: EmployeeCompensationProfile,
    period: PayPeriod,
    attendance: Iterable[AttendanceEvent],
    allowances: Iterable[Allowance],
    effective_date: date | None,
    provider: RuleTableProvider,
    *,
    engine_version: str = DEFAULT_ENGINE_VERSION,
    clock: Callable[[], datetime] = _utc_now,
) -> PayrollCalculationResult:
    """Calculate one payroll record; see PayrollRecordAssembler.calculate."""
    request = PayrollCalculationRequest(
        profile=profile,
        period=period,
        attendance=tuple(attendance),
        allowances=tuple(allowances),
        effective_date=effective_date,
    )
    return PayrollRecordAssembler(engine_version, clock).calculate(request, provider)


__all__ = ["DEFAULT_ENGINE_VERSION", "PayrollRecordAssembler", "calculate"]
