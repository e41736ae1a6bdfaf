"""Deterministic payroll calculation engine."""

from payroll_calc.calculators.engine import DEFAULT_ENGINE_VERSION, PayrollRecordAssembler, calculate
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
    Severity,
    ValidationViolation,
)
from payroll_calc.errors import (
    ArithmeticInconsistencyError,
    BlockingRuleViolationError,
    InvalidInputError,
    PayrollCalculationError,
    RuleTableUnresolvedError,
)
from payroll_calc.rules import InMemoryRuleTableProvider, RuleTableVersion, load_rule_tables

__version__ = DEFAULT_ENGINE_VERSION

__all__ = [
    "Allowance",
    "AllowanceKind",
    "ArithmeticInconsistencyError",
    "AttendanceEvent",
    "AttendanceType",
    "BlockingRuleViolationError",
    "ContractCategory",
    "EmployeeCompensationProfile",
    "InMemoryRuleTableProvider",
    "InvalidInputError",
    "PayPeriod",
    "PayrollCalculationError",
    "PayrollCalculationRequest",
    "PayrollCalculationResult",
    "PayrollRecordAssembler",
    "RuleTableUnresolvedError",
    "RuleTableVersion",
    "Severity",
    "ValidationViolation",
    "calculate",
    "load_rule_tables",
]
