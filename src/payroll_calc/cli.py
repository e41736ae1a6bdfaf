"""Payroll calculation command line interface.

Provides offline tools for:
- Calculating one payroll record, or a batch, from a JSON file
- Showing the rule table in force on a date

Usage:
    python -m payroll_calc.cli calculate --rules data/rule_tables.json --input request.json
    python -m payroll_calc.cli calculate --input batch.json --workers 8
    python -m payroll_calc.cli rules --rules data/rule_tables.json --date 2024-03-31
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from typing import Any, Callable

from pydantic import ValidationError

from payroll_calc.api.schemas import CalculationRequest, CalculationResponse
from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.config import configure_logging, get_settings
from payroll_calc.errors import PayrollCalculationError
from payroll_calc.rules.provider import load_rule_tables, rule_table_to_payload
from payroll_calc.services.batch import run_payroll_batch


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date: {s!r}") from e


class PayrollCli:
    """Payroll calculation Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_calc.cli",
            description="Payroll calculation tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Logging level (default: LOG_LEVEL setting)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # calculate command
        calculate = subparsers.add_parser(
            "calculate",
            help="Calculate payroll from a JSON request file",
        )
        calculate.add_argument(
            "--rules",
            type=str,
            help="Rule table JSON file (default: RULE_TABLE_PATH setting)",
        )
        calculate.add_argument(
            "--input",
            type=str,
            required=True,
            help='Request JSON file: one request, or {"requests": [...]} for a batch',
        )
        calculate.add_argument(
            "--output",
            type=str,
            help="Write results to this file instead of stdout",
        )
        calculate.add_argument(
            "--workers",
            type=int,
            help="Worker threads for batches (default: BATCH_MAX_WORKERS setting)",
        )

        # rules command
        rules = subparsers.add_parser(
            "rules",
            help="Show the rule table in force on a date",
        )
        rules.add_argument(
            "--rules",
            type=str,
            help="Rule table JSON file (default: RULE_TABLE_PATH setting)",
        )
        rules.add_argument(
            "--date",
            type=parse_date,
            required=True,
            help="Effective date (YYYY-MM-DD)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "calculate": self._cmd_calculate,
            "rules": self._cmd_rules,
        }

        handler = handlers.get(parsed.command)
        if handler:
            return handler(parsed)

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _cmd_calculate(self, args: argparse.Namespace) -> int:
        """Calculate one record or a batch."""
        settings = get_settings()
        try:
            provider = load_rule_tables(args.rules or settings.rule_table_path)
            with open(args.input, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        is_batch = isinstance(document, dict) and "requests" in document
        try:
            if is_batch:
                requests = [CalculationRequest.model_validate(r) for r in document["requests"]]
            else:
                requests = [CalculationRequest.model_validate(document)]
        except ValidationError as e:
            print(f"ERROR: invalid request: {e}", file=sys.stderr)
            return 1

        assembler = PayrollRecordAssembler(engine_version=settings.engine_version)

        if not is_batch:
            try:
                result = assembler.calculate(requests[0].to_domain(), provider)
            except PayrollCalculationError as e:
                self._write({"error": e.to_dict()}, args.output)
                return 2
            self._write(CalculationResponse.from_result(result).model_dump(mode="json"), args.output)
            return 0

        batch = run_payroll_batch(
            [r.to_domain() for r in requests],
            provider,
            calculate_fn=assembler.calculate,
            max_workers=args.workers or settings.batch_max_workers,
        )
        self._write(
            {
                "results": [
                    CalculationResponse.from_result(r).model_dump(mode="json")
                    for r in batch.results.values()
                ],
                "errors": [
                    {
                        "employee_id": err.employee_id,
                        "code": err.code,
                        "detail": err.detail,
                        "violations": err.violations,
                    }
                    for err in batch.errors.values()
                ],
                "total_gross": str(batch.total_gross),
                "total_net": str(batch.total_net),
                "total_employer_contributions": str(batch.total_employer_contributions),
                "error_count": batch.error_count,
            },
            args.output,
        )
        return 0 if batch.success else 2

    def _cmd_rules(self, args: argparse.Namespace) -> int:
        """Show the rule table for a date."""
        try:
            provider = load_rule_tables(args.rules or get_settings().rule_table_path)
        except (OSError, ValueError) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        try:
            version = provider.resolve(args.date)
        except PayrollCalculationError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2

        self._write(rule_table_to_payload(version), None)
        return 0

    def _write(self, data: dict[str, Any], output: str | None) -> None:
        text = json.dumps(data, indent=2, sort_keys=True)
        if output:
            with open(output, "w", encoding="utf-8") as f:
                f.write(text + "\n")
            print(f"Wrote {output}")
        else:
            print(text)


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
