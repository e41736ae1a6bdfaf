"""Payroll calculation and rule table endpoints."""

from datetime import date

from fastapi import APIRouter, status

from payroll_calc.api.dependencies import Assembler, RuleProvider
from payroll_calc.api.schemas import (
    CalculationRequest,
    CalculationResponse,
    ErrorResponse,
    RuleTableResponse,
)
from payroll_calc.rules.provider import rule_table_to_payload

router = APIRouter(prefix="/payroll", tags=["payroll"])
rule_tables_router = APIRouter(prefix="/rule-tables", tags=["rule-tables"])


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def calculate_payroll(
    payload: CalculationRequest,
    provider: RuleProvider,
    assembler: Assembler,
) -> CalculationResponse:
    """Calculate one employee's payroll for a period.

    Domain errors are translated by the application's exception handler.
    """
    result = assembler.calculate(payload.to_domain(), provider)
    return CalculationResponse.from_result(result)


@rule_tables_router.get(
    "/{effective_date}",
    response_model=RuleTableResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_rule_table(effective_date: date, provider: RuleProvider) -> RuleTableResponse:
    """Return the rule table version in force on a date."""
    version = provider.resolve(effective_date)
    return RuleTableResponse(
        version_id=version.version_id,
        effective_start=version.effective_start,
        effective_end=version.effective_end,
        payload=rule_table_to_payload(version),
    )
