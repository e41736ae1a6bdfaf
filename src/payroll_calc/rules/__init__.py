"""Jurisdiction rule tables."""

from payroll_calc.rules.provider import (
    InMemoryRuleTableProvider,
    RuleTableProvider,
    load_rule_tables,
    parse_rule_table,
    rule_table_to_payload,
)
from payroll_calc.rules.types import (
    ContributionPayer,
    ContributionScheme,
    OvertimeCategory,
    OvertimeTier,
    RuleTableVersion,
    TaxBasis,
    TaxBracket,
)

__all__ = [
    "ContributionPayer",
    "ContributionScheme",
    "InMemoryRuleTableProvider",
    "OvertimeCategory",
    "OvertimeTier",
    "RuleTableProvider",
    "RuleTableVersion",
    "TaxBasis",
    "TaxBracket",
    "load_rule_tables",
    "parse_rule_table",
    "rule_table_to_payload",
]
