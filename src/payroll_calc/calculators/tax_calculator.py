"""Income tax and social contribution calculation."""

from __future__ import annotations

from decimal import Decimal

from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.types import ContributionLine, StatutoryDeductions
from payroll_calc.rules.types import (
    ContributionPayer,
    ContributionScheme,
    RuleTableVersion,
    TaxBasis,
    TaxBracket,
)

ZERO = Decimal("0")
MONTHS_PER_YEAR = Decimal("12")


class StatutoryDeductionCalculator:
    """Calculates statutory deductions from gross salary.

    Rule tables carry:
    {
        "tax_basis": "MONTHLY" | "ANNUAL",
        "tax_brackets": [
            {"lower_bound": 0, "rate": 0},
            {"lower_bound": 100000, "rate": 0.10},
            ...
        ],
        "contributions": [
            {"code": "PENSION", "rate": 0.06, "ceiling": 1800000, "payer": "EMPLOYEE"},
            ...
        ]
    }

    Employer-paid contributions are returned as lines but are never part of
    total_deductions.
    """

    def calculate(self, gross: Decimal, rules: RuleTableVersion) -> StatutoryDeductions:
        income_tax = self.income_tax(gross, rules)
        contributions = tuple(
            self.contribution(gross, scheme, rules) for scheme in rules.contributions
        )
        employee_total = sum(
            (c.amount for c in contributions if c.payer == ContributionPayer.EMPLOYEE.value),
            ZERO,
        )
        employer_total = sum(
            (c.amount for c in contributions if c.payer == ContributionPayer.EMPLOYER.value),
            ZERO,
        )
        return StatutoryDeductions(
            income_tax=income_tax,
            contributions=contributions,
            total_deductions=income_tax + employee_total,
            employer_contributions_total=employer_total,
        )

    def income_tax(self, gross: Decimal, rules: RuleTableVersion) -> Decimal:
        """Progressive income tax, rounded once.

        Annual brackets are applied to the annualized gross and the result is
        brought back to one month before rounding.
        """
        if rules.tax_basis == TaxBasis.ANNUAL:
            tax = self._calculate_progressive_tax(gross * MONTHS_PER_YEAR, rules.tax_brackets)
            tax = tax / MONTHS_PER_YEAR
        else:
            tax = self._calculate_progressive_tax(gross, rules.tax_brackets)
        return LineItemBuilder.round_to_minor_unit(tax, rules.minor_unit)

    def contribution(
        self, gross: Decimal, scheme: ContributionScheme, rules: RuleTableVersion
    ) -> ContributionLine:
        """Contribution on gross capped at the scheme ceiling (cap before rate)."""
        base = gross if scheme.ceiling is None else min(gross, scheme.ceiling)
        base = max(base, ZERO)
        return ContributionLine(
            code=scheme.code,
            name=scheme.name,
            payer=scheme.payer.value,
            base=base,
            rate=scheme.rate,
            amount=LineItemBuilder.round_to_minor_unit(base * scheme.rate, rules.minor_unit),
        )

    def _calculate_progressive_tax(
        self, taxable: Decimal, brackets: tuple[TaxBracket, ...]
    ) -> Decimal:
        """Unrounded tax over brackets whose upper bound is the next lower bound."""
        total_tax = ZERO
        ordered = sorted(brackets, key=lambda b: b.lower_bound)

        for i, bracket in enumerate(ordered):
            if taxable <= bracket.lower_bound:
                break
            upper = ordered[i + 1].lower_bound if i + 1 < len(ordered) else None
            top = taxable if upper is None else min(taxable, upper)
            total_tax += (top - bracket.lower_bound) * bracket.rate

        return total_tax
