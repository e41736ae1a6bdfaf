"""Tests for the payroll command line interface."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from payroll_calc.cli import PayrollCli

ROOT = Path(__file__).resolve().parent.parent
RULES = str(ROOT / "data" / "rule_tables.json")
SAMPLE_REQUEST = str(ROOT / "data" / "sample_request.json")


@pytest.fixture
def cli():
    return PayrollCli()


@pytest.fixture
def sample() -> dict:
    return json.loads(Path(SAMPLE_REQUEST).read_text())


def write_json(path: Path, data) -> str:
    path.write_text(json.dumps(data))
    return str(path)


class TestCalculateCommand:
    def test_sample_request(self, cli, capsys):
        """Overtime, a late arrival, paid sick leave and two allowances."""
        code = cli.run(["calculate", "--rules", RULES, "--input", SAMPLE_REQUEST])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["provenance"]["rule_table_version_id"] == "SN-2024.1"
        assert data["delay_penalty"] == "234.38"
        assert data["gross_salary"] == "189081.25"
        assert data["income_tax"] == "33724.38"
        assert data["net_salary"] == "130776.30"
        assert Decimal(data["net_salary"]) == Decimal(data["gross_salary"]) - Decimal(
            data["total_deductions"]
        )

    def test_output_file(self, cli, tmp_path, capsys):
        output = tmp_path / "result.json"

        code = cli.run(
            ["calculate", "--rules", RULES, "--input", SAMPLE_REQUEST, "--output", str(output)]
        )

        assert code == 0
        assert f"Wrote {output}" in capsys.readouterr().out
        assert json.loads(output.read_text())["employee_id"] == "EMP-001"

    def test_blocking_violation_exit_code(self, cli, tmp_path, sample, capsys):
        sample["profile"]["base_salary"] = "1000"

        code = cli.run(
            ["calculate", "--rules", RULES, "--input", write_json(tmp_path / "low.json", sample)]
        )

        assert code == 2
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "BLOCKING_VIOLATION"

    def test_batch(self, cli, tmp_path, sample, capsys):
        second = json.loads(json.dumps(sample))
        second["profile"]["employee_id"] = "EMP-002"
        third = json.loads(json.dumps(sample))
        third["profile"]["employee_id"] = "EMP-003"
        third["profile"]["base_salary"] = "1000"
        path = write_json(tmp_path / "batch.json", {"requests": [sample, second, third]})

        code = cli.run(["calculate", "--rules", RULES, "--input", path, "--workers", "2"])

        assert code == 2
        data = json.loads(capsys.readouterr().out)
        assert [r["employee_id"] for r in data["results"]] == ["EMP-001", "EMP-002"]
        assert data["error_count"] == 1
        assert data["errors"][0]["employee_id"] == "EMP-003"
        assert data["total_net"] == "261552.60"

    def test_invalid_request(self, cli, tmp_path, sample, capsys):
        sample["period"] = "March"

        code = cli.run(
            ["calculate", "--rules", RULES, "--input", write_json(tmp_path / "bad.json", sample)]
        )

        assert code == 1
        assert "invalid request" in capsys.readouterr().err

    def test_missing_input_file(self, cli, tmp_path, capsys):
        code = cli.run(
            ["calculate", "--rules", RULES, "--input", str(tmp_path / "missing.json")]
        )

        assert code == 1
        assert "ERROR" in capsys.readouterr().err


class TestRulesCommand:
    def test_show_rules(self, cli, capsys):
        code = cli.run(["rules", "--rules", RULES, "--date", "2023-06-30"])

        assert code == 0
        assert json.loads(capsys.readouterr().out)["version_id"] == "SN-2023.1"

    def test_no_rules_for_date(self, cli, capsys):
        code = cli.run(["rules", "--rules", RULES, "--date", "2010-01-01"])

        assert code == 2
        assert "No rule table version effective on 2010-01-01" in capsys.readouterr().err

    def test_bad_date_argument(self, cli):
        with pytest.raises(SystemExit):
            cli.run(["rules", "--rules", RULES, "--date", "yesterday"])


def test_no_command_prints_help(cli, capsys):
    assert cli.run([]) == 1
    assert "Payroll calculation tools" in capsys.readouterr().out
