"""Payslip line builder and rounding."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from payroll_calc.calculators.types import (
    ContributionLine,
    GrossSalaryResult,
    LineCandidate,
    LineType,
    OvertimeResult,
    StatutoryDeductions,
)

ZERO = Decimal("0")


class LineItemBuilder:
    """Builds signed payslip lines from calculation stage outputs.

    Sign conventions (non-negotiable):
    - EARNING: positive
    - ATTENDANCE_DEDUCTION: negative
    - TAX (employee): negative
    - CONTRIBUTION (employee): negative
    - EMPLOYER_CONTRIBUTION: positive (liability, not part of net)

    Rounding:
    - Each line item is rounded half-up to the currency's minor unit once
    - Sub-totals are never rounded on their own
    """

    DEFAULT_MINOR_UNIT = Decimal("0.01")

    @staticmethod
    def round_to_minor_unit(amount: Decimal, minor_unit: Decimal = DEFAULT_MINOR_UNIT) -> Decimal:
        """Round amount half-up to the currency's minor unit."""
        return amount.quantize(minor_unit, rounding=ROUND_HALF_UP)

    @staticmethod
    def create_earning_line(
        code: str,
        amount: Decimal,
        quantity: Decimal | None = None,
        rate: Decimal | None = None,
        explanation: str | None = None,
    ) -> LineCandidate:
        """Create an earning line item (positive amount)."""
        return LineCandidate(
            line_type=LineType.EARNING,
            code=code,
            amount=abs(amount),
            quantity=quantity,
            rate=rate,
            explanation=explanation,
        )

    @staticmethod
    def create_attendance_deduction_line(
        code: str,
        amount: Decimal,
        quantity: Decimal | None = None,
        explanation: str | None = None,
    ) -> LineCandidate:
        """Create a delay/absence deduction line (negative amount)."""
        return LineCandidate(
            line_type=LineType.ATTENDANCE_DEDUCTION,
            code=code,
            amount=-abs(amount),
            quantity=quantity,
            explanation=explanation,
        )

    @staticmethod
    def create_tax_line(amount: Decimal, explanation: str | None = None) -> LineCandidate:
        """Create an employee income tax line (negative amount)."""
        return LineCandidate(
            line_type=LineType.TAX,
            code="INCOME_TAX",
            amount=-abs(amount),
            explanation=explanation,
        )

    @staticmethod
    def create_contribution_line(contribution: ContributionLine) -> LineCandidate:
        """Create a social contribution line, signed by payer."""
        if contribution.payer == "EMPLOYER":
            return LineCandidate(
                line_type=LineType.EMPLOYER_CONTRIBUTION,
                code=contribution.code,
                amount=abs(contribution.amount),
                quantity=contribution.base,
                rate=contribution.rate,
                explanation=f"{contribution.name} (employer)",
            )
        return LineCandidate(
            line_type=LineType.CONTRIBUTION,
            code=contribution.code,
            amount=-abs(contribution.amount),
            quantity=contribution.base,
            rate=contribution.rate,
            explanation=contribution.name,
        )

    @staticmethod
    def build_lines(
        gross: GrossSalaryResult,
        overtime: OvertimeResult,
        deductions: StatutoryDeductions,
        allowance_amounts: dict[str, Decimal] | None = None,
    ) -> list[LineCandidate]:
        """Build the full payslip line set in a stable order.

        Zero-amount lines are omitted, except base pay which is always shown.
        """
        lines = [
            LineItemBuilder.create_earning_line(
                "BASE",
                gross.regular_pay,
                quantity=gross.employment_fraction,
                explanation="Base salary",
            )
        ]
        if overtime.amount > 0:
            lines.append(
                LineItemBuilder.create_earning_line(
                    "OVERTIME",
                    overtime.amount,
                    quantity=overtime.hours,
                    rate=overtime.hourly_rate,
                    explanation=", ".join(
                        [f"{t.hours}h x {t.multiplier}" for t in overtime.tiers if t.hours > 0]
                        + [
                            f"{c.hours}h x {c.multiplier} ({c.category.value.lower()})"
                            for c in overtime.categories
                        ]
                    ),
                )
            )
        if allowance_amounts:
            for code in sorted(allowance_amounts):
                if allowance_amounts[code] > 0:
                    lines.append(LineItemBuilder.create_earning_line(code, allowance_amounts[code]))
        if gross.delay_penalty > 0:
            lines.append(
                LineItemBuilder.create_attendance_deduction_line(
                    "DELAY_PENALTY", gross.delay_penalty, explanation="Lateness penalty"
                )
            )
        if gross.absence_deduction > 0:
            lines.append(
                LineItemBuilder.create_attendance_deduction_line(
                    "ABSENCE", gross.absence_deduction, explanation="Unpaid absence"
                )
            )
        if deductions.income_tax > 0:
            lines.append(LineItemBuilder.create_tax_line(deductions.income_tax, "Income tax"))
        for contribution in deductions.contributions:
            if contribution.amount > 0:
                lines.append(LineItemBuilder.create_contribution_line(contribution))
        return lines

    @staticmethod
    def calculate_net_from_lines(lines: list[LineCandidate]) -> Decimal:
        """Calculate net pay from line items.

        NET = Σ(EARNING) + Σ(ATTENDANCE_DEDUCTION) + Σ(TAX) + Σ(CONTRIBUTION)

        Note: EMPLOYER_CONTRIBUTION is excluded from net calculation (it's a liability).
        """
        net = ZERO
        for line in lines:
            if line.line_type != LineType.EMPLOYER_CONTRIBUTION:
                net += line.amount
        return net

    @staticmethod
    def calculate_gross_from_lines(lines: list[LineCandidate]) -> Decimal:
        """Calculate gross pay from line items.

        GROSS = Σ(EARNING) + Σ(ATTENDANCE_DEDUCTION)
        """
        gross = ZERO
        for line in lines:
            if line.line_type in (LineType.EARNING, LineType.ATTENDANCE_DEDUCTION):
                gross += line.amount
        return gross

    @staticmethod
    def validate_line_signs(lines: list[LineCandidate]) -> list[str]:
        """Validate that all line items have correct signs.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for i, line in enumerate(lines):
            if line.line_type in (LineType.EARNING, LineType.EMPLOYER_CONTRIBUTION):
                if line.amount < 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value}) has negative amount {line.amount}, expected positive"
                    )
            elif line.amount > 0:
                errors.append(
                    f"Line {i} ({line.line_type.value}) has positive amount {line.amount}, expected negative"
                )

        return errors

    @staticmethod
    def sum_by_type(lines: list[LineCandidate]) -> dict[LineType, Decimal]:
        """Sum line amounts by type."""
        totals: dict[LineType, Decimal] = {lt: ZERO for lt in LineType}
        for line in lines:
            totals[line.line_type] += line.amount
        return totals
