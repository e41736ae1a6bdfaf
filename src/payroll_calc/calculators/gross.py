"""Gross salary computation."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.types import (
    Allowance,
    AllowanceKind,
    AttendanceSummary,
    EmployeeCompensationProfile,
    GrossSalaryResult,
    OvertimeResult,
    PayPeriod,
)
from payroll_calc.rules.types import RuleTableVersion

ZERO = Decimal("0")
ONE = Decimal("1")
MINUTES_PER_HOUR = Decimal("60")


class GrossSalaryComputer:
    """Combines base pay, overtime, allowances and attendance deductions.

    gross = regular + overtime + allowances + bonuses - delay - absence

    Attendance deductions are capped at the earnings they reduce, so gross
    never goes below zero and the payslip lines always add up to it.
    """

    @staticmethod
    def daily_rate(profile: EmployeeCompensationProfile, rules: RuleTableVersion) -> Decimal:
        """Contractual base divided by the legal number of working days."""
        return profile.base_salary / rules.legal_monthly_working_days

    @staticmethod
    def employment_fraction(
        profile: EmployeeCompensationProfile,
        period: PayPeriod,
        rules: RuleTableVersion,
    ) -> Decimal:
        """Share of the period's working days inside the employment window.

        Returns exactly 1 when the employee is employed the whole period.
        """
        working_days = [d for d in period.days() if d.weekday() in rules.working_weekdays]
        employed = [
            d
            for d in working_days
            if (profile.hire_date is None or d >= profile.hire_date)
            and (profile.termination_date is None or d <= profile.termination_date)
        ]
        if len(employed) == len(working_days):
            return ONE
        return Decimal(len(employed)) / Decimal(len(working_days))

    @staticmethod
    def delay_penalty(
        summary: AttendanceSummary,
        hourly_rate: Decimal,
        daily_rate: Decimal,
        rules: RuleTableVersion,
    ) -> Decimal:
        """Sum of per-day delay penalties, each capped, rounded once."""
        day_cap = rules.delay_penalty_cap_fraction * daily_rate
        total = ZERO
        for _, minutes in summary.delay_minutes_by_day:
            total += min(Decimal(minutes) / MINUTES_PER_HOUR * hourly_rate, day_cap)
        return LineItemBuilder.round_to_minor_unit(total, rules.minor_unit)

    @staticmethod
    def absence_deduction(
        summary: AttendanceSummary, daily_rate: Decimal, rules: RuleTableVersion
    ) -> Decimal:
        return LineItemBuilder.round_to_minor_unit(
            summary.unpaid_absence_days * daily_rate, rules.minor_unit
        )

    @staticmethod
    def allowance_amounts(
        allowances: Iterable[Allowance], rules: RuleTableVersion
    ) -> dict[str, Decimal]:
        """Rounded amount per allowance code (each allowance rounded once)."""
        amounts: dict[str, Decimal] = {}
        for allowance in allowances:
            rounded = LineItemBuilder.round_to_minor_unit(allowance.amount, rules.minor_unit)
            amounts[allowance.code] = amounts.get(allowance.code, ZERO) + rounded
        return amounts

    def compute(
        self,
        profile: EmployeeCompensationProfile,
        period: PayPeriod,
        summary: AttendanceSummary,
        overtime: OvertimeResult,
        allowances: Iterable[Allowance],
        rules: RuleTableVersion,
    ) -> GrossSalaryResult:
        allowances = list(allowances)
        fraction = self.employment_fraction(profile, period, rules)
        regular_pay = LineItemBuilder.round_to_minor_unit(
            profile.base_salary * fraction, rules.minor_unit
        )

        allowances_total = sum(
            (
                LineItemBuilder.round_to_minor_unit(a.amount, rules.minor_unit)
                for a in allowances
                if a.kind == AllowanceKind.ALLOWANCE
            ),
            ZERO,
        )
        bonuses_total = sum(
            (
                LineItemBuilder.round_to_minor_unit(a.amount, rules.minor_unit)
                for a in allowances
                if a.kind == AllowanceKind.BONUS
            ),
            ZERO,
        )
        earnings = regular_pay + overtime.amount + allowances_total + bonuses_total

        daily = self.daily_rate(profile, rules)
        hourly = overtime.hourly_rate
        absence = min(self.absence_deduction(summary, daily, rules), earnings)
        delay = min(self.delay_penalty(summary, hourly, daily, rules), earnings - absence)

        return GrossSalaryResult(
            regular_pay=regular_pay,
            overtime_pay=overtime.amount,
            allowances_total=allowances_total,
            bonuses_total=bonuses_total,
            delay_penalty=delay,
            absence_deduction=absence,
            gross_salary=earnings - absence - delay,
            employment_fraction=fraction,
        )
