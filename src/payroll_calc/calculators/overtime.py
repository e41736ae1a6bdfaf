"""Tiered overtime premium calculation."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.types import (
    EmployeeCompensationProfile,
    OvertimeCategoryLine,
    OvertimeResult,
    OvertimeTierLine,
    Severity,
    ValidationViolation,
)
from payroll_calc.errors import ArithmeticInconsistencyError
from payroll_calc.rules.types import OvertimeCategory, RuleTableVersion

ZERO = Decimal("0")


class OvertimeCalculator:
    """Converts overtime hours into premium pay.

    Tiers apply progressively in ascending order: with tiers
    [(0, 1.25), (8, 1.50)], ten overtime hours pay 8h at 1.25 and 2h at 1.50.
    Hours past a tier's range are never charged at that tier's multiplier.

    Night, weekend and holiday hours are paid at their own multiplier when
    the rule table sets one, and are then left out of the tiers.
    """

    @staticmethod
    def hourly_rate(profile: EmployeeCompensationProfile) -> Decimal:
        """Base salary divided by scheduled monthly hours (unrounded)."""
        return profile.base_salary / profile.monthly_hours

    def split_by_tier(
        self, overtime_hours: Decimal, rules: RuleTableVersion
    ) -> list[OvertimeTierLine]:
        """Distribute overtime hours over the tiers, lowest first."""
        tiers = sorted(rules.overtime_tiers, key=lambda t: t.hour_range_start)
        lines: list[OvertimeTierLine] = []

        for i, tier in enumerate(tiers):
            if overtime_hours <= tier.hour_range_start:
                break
            upper = tiers[i + 1].hour_range_start if i + 1 < len(tiers) else None
            ceiling = overtime_hours if upper is None else min(overtime_hours, upper)
            lines.append(
                OvertimeTierLine(
                    hour_range_start=tier.hour_range_start,
                    hours=ceiling - tier.hour_range_start,
                    multiplier=tier.multiplier,
                )
            )

        return lines

    def split_by_category(
        self,
        categories: Mapping[OvertimeCategory, Decimal],
        rules: RuleTableVersion,
    ) -> list[OvertimeCategoryLine]:
        """Category hours the rule table prices separately, in enum order."""
        lines: list[OvertimeCategoryLine] = []
        for category in OvertimeCategory:
            hours = categories.get(category, ZERO)
            multiplier = rules.overtime_multiplier_for(category)
            if hours > 0 and multiplier is not None:
                lines.append(OvertimeCategoryLine(category, hours, multiplier))
        return lines

    def calculate(
        self,
        overtime_hours: Decimal,
        hourly_rate: Decimal,
        rules: RuleTableVersion,
        categories: Mapping[OvertimeCategory, Decimal] | None = None,
    ) -> OvertimeResult:
        """Compute overtime pay, rounded once, and flag hours above the legal cap.

        ``categories`` gives the part of ``overtime_hours`` worked at night,
        on weekends or on public holidays. The amount is computed in full even
        above the cap; the cap only produces a non-blocking OVERTIME_CAP
        violation.
        """
        if overtime_hours <= 0:
            return OvertimeResult(hours=ZERO, hourly_rate=hourly_rate, amount=ZERO)

        premiums = self.split_by_category(categories or {}, rules)
        tiered_hours = overtime_hours - sum((line.hours for line in premiums), ZERO)
        if tiered_hours < 0:
            raise ArithmeticInconsistencyError(
                "overtime_categories",
                f"category hours exceed total overtime of {overtime_hours}h",
            )

        tiers = self.split_by_tier(tiered_hours, rules)
        raw_amount = sum(
            (line.hours * hourly_rate * line.multiplier for line in tiers), ZERO
        ) + sum((line.hours * hourly_rate * line.multiplier for line in premiums), ZERO)
        amount = LineItemBuilder.round_to_minor_unit(raw_amount, rules.minor_unit)

        violations: list[ValidationViolation] = []
        if overtime_hours > rules.overtime_cap_hours:
            violations.append(
                ValidationViolation(
                    rule_name="OVERTIME_CAP",
                    severity=Severity.WARNING,
                    message=(
                        f"{overtime_hours}h of overtime exceeds the legal cap of "
                        f"{rules.overtime_cap_hours}h for the period"
                    ),
                    offending_value=str(overtime_hours),
                )
            )

        return OvertimeResult(
            hours=overtime_hours,
            hourly_rate=hourly_rate,
            amount=amount,
            tiers=tuple(tiers),
            categories=tuple(premiums),
            violations=tuple(violations),
        )
