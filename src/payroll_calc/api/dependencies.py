"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.rules.provider import InMemoryRuleTableProvider


def get_rule_provider(request: Request) -> InMemoryRuleTableProvider:
    """Rule tables loaded at startup."""
    provider = getattr(request.app.state, "rule_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rule tables are not loaded",
        )
    return provider


def get_assembler(request: Request) -> PayrollRecordAssembler:
    """Shared, stateless calculation engine."""
    return request.app.state.assembler


# Type aliases for cleaner dependency injection
RuleProvider = Annotated[InMemoryRuleTableProvider, Depends(get_rule_provider)]
Assembler = Annotated[PayrollRecordAssembler, Depends(get_assembler)]
