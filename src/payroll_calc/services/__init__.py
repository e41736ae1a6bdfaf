"""Payroll calculation services."""

from payroll_calc.services.batch import PayrollBatchError, PayrollBatchResult, run_payroll_batch
from payroll_calc.services.middleware import (
    AuditRecord,
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
    with_audit,
    with_timing,
)

__all__ = [
    "AuditRecord",
    "AuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "PayrollBatchError",
    "PayrollBatchResult",
    "run_payroll_batch",
    "with_audit",
    "with_timing",
]
