"""Payroll calculation engine."""

from payroll_calc.calculators.attendance import TimeAndAttendanceAggregator
from payroll_calc.calculators.engine import PayrollRecordAssembler, calculate
from payroll_calc.calculators.gross import GrossSalaryComputer
from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.overtime import OvertimeCalculator
from payroll_calc.calculators.tax_calculator import StatutoryDeductionCalculator
from payroll_calc.calculators.validator import BusinessRuleValidator

__all__ = [
    "BusinessRuleValidator",
    "GrossSalaryComputer",
    "LineItemBuilder",
    "OvertimeCalculator",
    "PayrollRecordAssembler",
    "StatutoryDeductionCalculator",
    "TimeAndAttendanceAggregator",
    "calculate",
]
