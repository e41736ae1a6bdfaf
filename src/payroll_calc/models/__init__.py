"""ORM models."""

from payroll_calc.models.base import Base, TimestampMixin
from payroll_calc.models.rule_table import RuleTableVersionRecord

__all__ = ["Base", "TimestampMixin", "RuleTableVersionRecord"]
