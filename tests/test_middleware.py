"""Tests for timing and audit wrappers."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from payroll_calc.calculators.types import ContractCategory, PayrollCalculationRequest
from payroll_calc.errors import BlockingRuleViolationError
from payroll_calc.services.middleware import (
    AuditRecord,
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
    with_audit,
    with_timing,
)

RECORDED_AT = datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def below_minimum(make_profile, period):
    return PayrollCalculationRequest(
        profile=make_profile(employee_id="EMP-LOW", base_salary=Decimal("50000")),
        period=period,
    )


class TestWithAudit:
    def test_success_recorded(self, assembler, golden_request, provider):
        sink = InMemoryAuditSink()
        calculate_fn = with_audit(assembler.calculate, sink, clock=lambda: RECORDED_AT)

        result = calculate_fn(golden_request, provider)

        [record] = sink.records
        assert record.outcome == "SUCCESS"
        assert record.recorded_at == RECORDED_AT
        assert record.calculation_id == str(result.provenance.calculation_id)
        assert record.result_fingerprint == result.result_fingerprint
        assert record.rule_table_version_id == "TEST-2024.1"

    def test_failure_recorded_and_reraised(self, assembler, below_minimum, provider):
        sink = InMemoryAuditSink()
        calculate_fn = with_audit(assembler.calculate, sink)

        with pytest.raises(BlockingRuleViolationError):
            calculate_fn(below_minimum, provider)

        [record] = sink.records
        assert record.outcome == "BLOCKING_VIOLATION"
        assert record.calculation_id is None
        assert record.violations[0]["rule_name"] == "MINIMUM_WAGE"

    def test_failing_sink_does_not_change_outcome(
        self, assembler, golden_request, provider, caplog
    ):
        class BrokenSink:
            def record(self, record):
                raise OSError("audit store unavailable")

        calculate_fn = with_audit(assembler.calculate, BrokenSink())

        with caplog.at_level(logging.ERROR, logger="payroll_calc.services.middleware"):
            result = calculate_fn(golden_request, provider)

        assert result.net_salary == Decimal("131953.13")
        assert "Audit sink" in caplog.text

    def test_sinks_satisfy_protocol(self):
        assert isinstance(InMemoryAuditSink(), AuditSink)
        assert isinstance(LoggingAuditSink(), AuditSink)


class TestLoggingAuditSink:
    def _record(self, **overrides):
        values = {
            "employee_id": "EMP-001",
            "period": "2024-03",
            "outcome": "SUCCESS",
            "recorded_at": RECORDED_AT,
        }
        values.update(overrides)
        return AuditRecord(**values)

    def test_success_logged_at_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="payroll_calc.services.middleware"):
            LoggingAuditSink().record(self._record(calculation_id="abc"))

        assert caplog.records[0].levelno == logging.INFO
        assert "calculation_id=abc" in caplog.text

    def test_warnings_logged_info_notes_skipped(self, caplog):
        violations = [
            {"rule_name": "DAILY_HOURS", "severity": "WARNING", "message": "13h"},
            {"rule_name": "PROBATION_CONTRACT", "severity": "INFO", "message": "probation"},
        ]

        with caplog.at_level(logging.INFO, logger="payroll_calc.services.middleware"):
            LoggingAuditSink().record(self._record(violations=violations))

        assert "DAILY_HOURS" in caplog.text
        assert "PROBATION_CONTRACT" not in caplog.text

    def test_failure_logged_at_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="payroll_calc.services.middleware"):
            LoggingAuditSink().record(self._record(outcome="INVALID_INPUT", detail="bad"))

        assert caplog.records[0].levelno == logging.WARNING


class TestWithTiming:
    def test_reports_elapsed_time(self, assembler, golden_request, provider):
        timings = []
        calculate_fn = with_timing(
            assembler.calculate, on_timing=lambda request, elapsed: timings.append(elapsed)
        )

        calculate_fn(golden_request, provider)

        assert len(timings) == 1
        assert timings[0] >= 0

    def test_timed_even_on_failure(self, assembler, below_minimum, provider):
        timings = []
        calculate_fn = with_timing(
            assembler.calculate, on_timing=lambda request, elapsed: timings.append(elapsed)
        )

        with pytest.raises(BlockingRuleViolationError):
            calculate_fn(below_minimum, provider)

        assert len(timings) == 1

    def test_composes_with_audit(self, assembler, make_profile, period, provider):
        sink = InMemoryAuditSink()
        calculate_fn = with_audit(with_timing(assembler.calculate), sink)
        request = PayrollCalculationRequest(
            profile=make_profile(contract_category=ContractCategory.PROBATION), period=period
        )

        result = calculate_fn(request, provider)

        assert sink.records[0].violations == [v.to_dict() for v in result.violations]
