"""Batch payroll runs across worker threads."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.calculators.types import PayrollCalculationRequest, PayrollCalculationResult
from payroll_calc.errors import PayrollCalculationError
from payroll_calc.rules.provider import RuleTableProvider

logger = logging.getLogger(__name__)

CalculateFn = Callable[[PayrollCalculationRequest, RuleTableProvider], PayrollCalculationResult]


@dataclass
class PayrollBatchError:
    """Why one employee's calculation produced no result."""

    employee_id: str
    code: str
    detail: str
    violations: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_exception(cls, employee_id: str, exc: Exception) -> PayrollBatchError:
        if isinstance(exc, PayrollCalculationError):
            payload = exc.to_dict()
            return cls(
                employee_id=employee_id,
                code=payload["code"],
                detail=payload["detail"],
                violations=payload.get("violations", []),
            )
        return cls(employee_id=employee_id, code="UNEXPECTED_ERROR", detail=f"Unexpected error: {exc}")


@dataclass
class PayrollBatchResult:
    """Result of calculating a batch of employees."""

    results: dict[str, PayrollCalculationResult]  # employee_id -> result
    errors: dict[str, PayrollBatchError] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)  # not started before cancellation
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    total_employer_contributions: Decimal = Decimal("0")

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def cancelled(self) -> bool:
        return bool(self.skipped)

    @property
    def success(self) -> bool:
        return not self.errors and not self.skipped


_SKIPPED = object()


def run_payroll_batch(
    requests: Iterable[PayrollCalculationRequest],
    provider: RuleTableProvider,
    *,
    calculate_fn: CalculateFn | None = None,
    max_workers: int = 4,
    cancel_event: threading.Event | None = None,
) -> PayrollBatchResult:
    """Calculate many independent payroll records concurrently.

    One employee's failure never aborts the others. Setting ``cancel_event``
    stops items that have not started yet; items already running finish.
    Results are collected in request order.
    """
    requests = list(requests)
    ids = [r.profile.employee_id for r in requests]
    if len(set(ids)) != len(ids):
        raise ValueError("each employee may appear only once in a batch")
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    if calculate_fn is None:
        calculate_fn = PayrollRecordAssembler().calculate

    def run_one(request: PayrollCalculationRequest) -> Any:
        if cancel_event is not None and cancel_event.is_set():
            return _SKIPPED
        return calculate_fn(request, provider)

    batch = PayrollBatchResult(results={})
    logger.info("Starting payroll batch of %d employee(s) with %d worker(s)", len(requests), max_workers)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [(r.profile.employee_id, executor.submit(run_one, r)) for r in requests]

        for employee_id, future in futures:
            try:
                outcome = future.result()
            except PayrollCalculationError as e:
                logger.warning("Payroll for employee %s failed: %s", employee_id, e)
                batch.errors[employee_id] = PayrollBatchError.from_exception(employee_id, e)
                continue
            except Exception as e:
                logger.exception("Unexpected error calculating payroll for employee %s", employee_id)
                batch.errors[employee_id] = PayrollBatchError.from_exception(employee_id, e)
                continue

            if outcome is _SKIPPED:
                batch.skipped.append(employee_id)
                continue

            batch.results[employee_id] = outcome
            batch.total_gross += outcome.gross_salary
            batch.total_net += outcome.net_salary
            batch.total_employer_contributions += outcome.employer_contributions_total

    logger.info(
        "Finished payroll batch: %d result(s), %d error(s), %d skipped",
        len(batch.results),
        batch.error_count,
        len(batch.skipped),
    )
    return batch
