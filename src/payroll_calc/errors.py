"""Errors raised by the payroll calculation engine."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from payroll_calc.calculators.types import ValidationViolation


class PayrollCalculationError(Exception):
    """Base class for every error the engine raises."""

    code = "CALCULATION_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self)}


class InvalidInputError(PayrollCalculationError):
    """Raised before any stage runs when compensation or attendance data is malformed."""

    code = "INVALID_INPUT"

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid payroll input: " + "; ".join(self.problems))

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self), "problems": self.problems}


class RuleTableUnresolvedError(PayrollCalculationError):
    """Raised when no rule table version applies on the effective date."""

    code = "RULE_TABLE_UNRESOLVED"

    def __init__(self, effective_date: date):
        self.effective_date = effective_date
        super().__init__(f"No rule table version effective on {effective_date}")


class BlockingRuleViolationError(PayrollCalculationError):
    """Raised when validation finds at least one BLOCKING violation.

    Carries every violation found, blocking or not, so callers can present
    all problems at once.
    """

    code = "BLOCKING_VIOLATION"

    def __init__(
        self,
        employee_id: str,
        violations: list[ValidationViolation],
    ):
        self.employee_id = employee_id
        self.violations = list(violations)
        blocking = self.blocking_violations
        super().__init__(
            f"Payroll for employee {employee_id} blocked by "
            f"{len(blocking)} violation(s): "
            + "; ".join(f"{v.rule_name}: {v.message}" for v in blocking)
        )

    @property
    def blocking_violations(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.is_blocking]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "detail": str(self),
            "violations": [v.to_dict() for v in self.violations],
        }


class ArithmeticInconsistencyError(PayrollCalculationError):
    """Raised when an internal invariant fails. Never expected in correct operation."""

    code = "ARITHMETIC_INCONSISTENCY"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Invariant '{invariant}' failed: {detail}")
