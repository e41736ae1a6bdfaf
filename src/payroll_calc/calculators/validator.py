"""Business rule checks before and after the money calculation."""

from __future__ import annotations

from decimal import Decimal

from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.types import (
    AttendanceSummary,
    ContractCategory,
    EmployeeCompensationProfile,
    Severity,
    ValidationViolation,
)
from payroll_calc.rules.types import RuleTableVersion

MINUTES_PER_HOUR = Decimal("60")


class BusinessRuleValidator:
    """Produces every violation found, never just the first.

    Only MINIMUM_WAGE is BLOCKING; the rest are warnings or notes that
    travel with a successful result.
    """

    def validate_inputs(
        self,
        profile: EmployeeCompensationProfile,
        summary: AttendanceSummary,
        rules: RuleTableVersion,
    ) -> list[ValidationViolation]:
        """Checks that depend only on the contract and attendance."""
        violations: list[ValidationViolation] = []

        if profile.scheduled_weekly_hours > rules.max_weekly_hours:
            violations.append(
                ValidationViolation(
                    rule_name="SCHEDULED_HOURS",
                    severity=Severity.WARNING,
                    message=(
                        f"Contract schedules {profile.scheduled_weekly_hours}h per week, "
                        f"above the legal maximum of {rules.max_weekly_hours}h"
                    ),
                    offending_value=str(profile.scheduled_weekly_hours),
                )
            )

        for week, minutes in summary.worked_minutes_by_week:
            hours = Decimal(minutes) / MINUTES_PER_HOUR
            if hours > rules.max_weekly_hours:
                violations.append(
                    ValidationViolation(
                        rule_name="WEEKLY_HOURS",
                        severity=Severity.WARNING,
                        message=(
                            f"Week {week}: {hours}h worked including overtime, "
                            f"above the legal maximum of {rules.max_weekly_hours}h"
                        ),
                        offending_value=str(hours),
                    )
                )

        for week, minutes in summary.overtime_minutes_by_week:
            hours = Decimal(minutes) / MINUTES_PER_HOUR
            if hours > rules.max_weekly_overtime_hours:
                violations.append(
                    ValidationViolation(
                        rule_name="WEEKLY_OVERTIME",
                        severity=Severity.WARNING,
                        message=(
                            f"Week {week}: {hours}h of overtime, "
                            f"above the weekly limit of {rules.max_weekly_overtime_hours}h"
                        ),
                        offending_value=str(hours),
                    )
                )

        for day, minutes in summary.worked_minutes_by_day:
            hours = Decimal(minutes) / MINUTES_PER_HOUR
            if hours > rules.max_daily_hours:
                violations.append(
                    ValidationViolation(
                        rule_name="DAILY_HOURS",
                        severity=Severity.WARNING,
                        message=(
                            f"{day.isoformat()}: {hours}h worked, "
                            f"above the daily maximum of {rules.max_daily_hours}h"
                        ),
                        offending_value=str(hours),
                    )
                )

        if summary.late_days > rules.max_late_days:
            violations.append(
                ValidationViolation(
                    rule_name="REPEATED_DELAYS",
                    severity=Severity.WARNING,
                    message=(
                        f"{summary.late_days} late days in the period "
                        f"(tolerated: {rules.max_late_days})"
                    ),
                    offending_value=str(summary.late_days),
                )
            )

        early_days = sum(
            1
            for _, minutes in summary.early_departure_minutes_by_day
            if minutes > rules.early_departure_threshold_minutes
        )
        if early_days > rules.max_early_departure_days:
            violations.append(
                ValidationViolation(
                    rule_name="EARLY_DEPARTURES",
                    severity=Severity.WARNING,
                    message=(
                        f"{early_days} departures more than "
                        f"{rules.early_departure_threshold_minutes} minutes early "
                        f"(tolerated: {rules.max_early_departure_days})"
                    ),
                    offending_value=str(early_days),
                )
            )

        if profile.contract_category == ContractCategory.PROBATION:
            violations.append(
                ValidationViolation(
                    rule_name="PROBATION_CONTRACT",
                    severity=Severity.INFO,
                    message="Employee is on a probation contract",
                    offending_value=profile.contract_category.value,
                )
            )

        return violations

    def validate_result(
        self,
        profile: EmployeeCompensationProfile,
        gross_salary: Decimal,
        net_salary: Decimal,
        employment_fraction: Decimal,
        rules: RuleTableVersion,
    ) -> list[ValidationViolation]:
        """Checks on the computed gross and net."""
        violations: list[ValidationViolation] = []

        if self.is_minimum_wage_covered(profile, rules):
            floor = LineItemBuilder.round_to_minor_unit(
                rules.minimum_wage * employment_fraction, rules.minor_unit
            )
            if gross_salary < floor:
                violations.append(
                    ValidationViolation(
                        rule_name="MINIMUM_WAGE",
                        severity=Severity.BLOCKING,
                        message=(
                            f"Gross salary {gross_salary} is below the minimum wage "
                            f"of {floor} {rules.currency}"
                        ),
                        offending_value=str(gross_salary),
                    )
                )

        if net_salary < 0:
            violations.append(
                ValidationViolation(
                    rule_name="NEGATIVE_NET",
                    severity=Severity.WARNING,
                    message=f"Net salary is negative: {net_salary}",
                    offending_value=str(net_salary),
                )
            )

        return violations

    @staticmethod
    def is_minimum_wage_covered(
        profile: EmployeeCompensationProfile, rules: RuleTableVersion
    ) -> bool:
        """Full-time permanent contracts are held to the minimum wage."""
        return (
            profile.contract_category == ContractCategory.PERMANENT
            and profile.scheduled_weekly_hours >= rules.standard_weekly_hours
        )
