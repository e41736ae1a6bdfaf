"""Caller-side wrappers composed around the pure calculate call.

The engine never times or audits itself. Callers opt in explicitly:

    calculate_fn = with_audit(with_timing(assembler.calculate), LoggingAuditSink())
    result = calculate_fn(request, provider)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from payroll_calc.calculators.types import PayrollCalculationRequest, PayrollCalculationResult
from payroll_calc.errors import PayrollCalculationError
from payroll_calc.rules.provider import RuleTableProvider

logger = logging.getLogger(__name__)

CalculateFn = Callable[[PayrollCalculationRequest, RuleTableProvider], PayrollCalculationResult]


@dataclass(frozen=True)
class AuditRecord:
    """What an audit store receives for each calculation attempt."""

    employee_id: str
    period: str
    outcome: str  # "SUCCESS" or the error code
    recorded_at: datetime
    calculation_id: str | None = None
    inputs_hash: str | None = None
    rule_table_version_id: str | None = None
    result_fingerprint: str | None = None
    violations: list[dict[str, Any]] = field(default_factory=list)
    detail: str | None = None


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit record consumers."""

    def record(self, record: AuditRecord) -> None:
        """Persist or forward one audit record."""
        ...


class LoggingAuditSink:
    """Writes audit records to the standard logger."""

    def __init__(self, audit_logger: logging.Logger | None = None):
        self._logger = audit_logger or logger

    def record(self, record: AuditRecord) -> None:
        if record.outcome == "SUCCESS":
            self._logger.info(
                "Payroll calculated: employee=%s period=%s calculation_id=%s rules=%s",
                record.employee_id,
                record.period,
                record.calculation_id,
                record.rule_table_version_id,
            )
        else:
            self._logger.warning(
                "Payroll failed: employee=%s period=%s outcome=%s detail=%s",
                record.employee_id,
                record.period,
                record.outcome,
                record.detail,
            )
        for violation in record.violations:
            if violation["severity"] != "INFO":
                self._logger.warning(
                    "Payroll violation: employee=%s period=%s rule=%s severity=%s %s",
                    record.employee_id,
                    record.period,
                    violation["rule_name"],
                    violation["severity"],
                    violation["message"],
                )


class InMemoryAuditSink:
    """Collects audit records in memory. Safe to share across threads."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []
        self._lock = threading.Lock()

    def record(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> list[AuditRecord]:
        with self._lock:
            return list(self._records)


def with_timing(
    calculate_fn: CalculateFn,
    on_timing: Callable[[PayrollCalculationRequest, float], None] | None = None,
) -> CalculateFn:
    """Wrap calculate_fn to measure each call's wall time in seconds."""

    def timed(request: PayrollCalculationRequest, provider: RuleTableProvider) -> PayrollCalculationResult:
        started = time.perf_counter()
        try:
            return calculate_fn(request, provider)
        finally:
            elapsed = time.perf_counter() - started
            logger.debug(
                "Payroll calculation for employee %s took %.3f ms",
                request.profile.employee_id,
                elapsed * 1000,
            )
            if on_timing is not None:
                on_timing(request, elapsed)

    return timed


def with_audit(
    calculate_fn: CalculateFn,
    sink: AuditSink,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> CalculateFn:
    """Wrap calculate_fn to hand every outcome to an audit sink.

    Domain errors are recorded and re-raised unchanged. A failing sink is
    logged and never changes the calculation outcome.
    """

    def emit(record: AuditRecord) -> None:
        try:
            sink.record(record)
        except Exception:
            logger.exception("Audit sink %s failed for employee %s", sink, record.employee_id)

    def audited(request: PayrollCalculationRequest, provider: RuleTableProvider) -> PayrollCalculationResult:
        employee_id = request.profile.employee_id
        period = str(request.period)
        try:
            result = calculate_fn(request, provider)
        except PayrollCalculationError as e:
            payload = e.to_dict()
            emit(
                AuditRecord(
                    employee_id=employee_id,
                    period=period,
                    outcome=e.code,
                    recorded_at=clock(),
                    violations=payload.get("violations", []),
                    detail=str(e),
                )
            )
            raise

        emit(
            AuditRecord(
                employee_id=employee_id,
                period=period,
                outcome="SUCCESS",
                recorded_at=clock(),
                calculation_id=str(result.provenance.calculation_id),
                inputs_hash=result.provenance.inputs_hash,
                rule_table_version_id=result.provenance.rule_table_version_id,
                result_fingerprint=result.result_fingerprint,
                violations=[v.to_dict() for v in result.violations],
            )
        )
        return result

    return audited
