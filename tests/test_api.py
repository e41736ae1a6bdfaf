"""API endpoint tests.

Tests the FastAPI endpoints against an in-memory rule table provider.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payroll_calc.api.app import create_app
from payroll_calc.config import Settings

pytestmark = pytest.mark.asyncio


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        engine_version="1.0.0",
        rule_table_path="data/rule_tables.json",
        rule_table_source="file",
        batch_max_workers=2,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
    )


@pytest_asyncio.fixture
async def client(provider, settings) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(provider=provider, settings=settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def day(work_date: str, end: str = "16:00:00", **extra) -> dict:
    return {
        "work_date": work_date,
        "attendance_type": "PRESENT",
        "scheduled_start": "08:00:00",
        "scheduled_end": "16:00:00",
        "actual_start": "08:00:00",
        "actual_end": end,
        **extra,
    }


@pytest.fixture
def golden_payload() -> dict:
    return {
        "profile": {
            "employee_id": "EMP-001",
            "base_salary": "150000",
            "contract_category": "PERMANENT",
            "scheduled_weekly_hours": "40",
            "scheduled_monthly_hours": "160",
        },
        "period": "2024-03",
        "attendance": [
            day("2024-03-04"),
            day("2024-03-05", end="19:00:00"),
            day("2024-03-06"),
        ],
    }


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["rule_tables"] == "loaded"
        assert data["rule_table_versions"] == 1

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestCalculateEndpoint:
    """POST /api/v1/payroll/calculate."""

    async def test_golden_calculation(self, client: AsyncClient, golden_payload):
        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["gross_salary"] == "153515.63"
        assert data["income_tax"] == "5351.56"
        assert data["total_deductions"] == "21562.50"
        assert data["net_salary"] == "131953.13"
        assert data["provenance"]["rule_table_version_id"] == "TEST-2024.1"
        assert data["attendance"]["days_recorded"] == 3
        assert [line["code"] for line in data["lines"]][:2] == ["BASE", "OVERTIME"]

    async def test_same_request_same_fingerprint(self, client: AsyncClient, golden_payload):
        first = await client.post("/api/v1/payroll/calculate", json=golden_payload)
        golden_payload["attendance"].reverse()
        second = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert first.json()["result_fingerprint"] == second.json()["result_fingerprint"]
        assert (
            first.json()["provenance"]["calculation_id"]
            == second.json()["provenance"]["calculation_id"]
        )

    async def test_blocking_violation_returns_422(self, client: AsyncClient, golden_payload):
        golden_payload["profile"]["base_salary"] = "50000"

        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "BLOCKING_VIOLATION"
        assert data["violations"][0]["rule_name"] == "MINIMUM_WAGE"

    async def test_invalid_attendance_returns_422(self, client: AsyncClient, golden_payload):
        golden_payload["attendance"].append(day("2024-04-01"))

        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "INVALID_INPUT"
        assert "outside period" in data["problems"][0]

    async def test_unresolved_rule_table_returns_404(self, client: AsyncClient, golden_payload):
        golden_payload["effective_date"] = "2020-01-31"

        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 404
        assert response.json()["code"] == "RULE_TABLE_UNRESOLVED"

    async def test_schema_validation(self, client: AsyncClient, golden_payload):
        golden_payload["period"] = "2024-13"

        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 422

    async def test_negative_salary_rejected(self, client: AsyncClient, golden_payload):
        golden_payload["profile"]["base_salary"] = "-1"

        response = await client.post("/api/v1/payroll/calculate", json=golden_payload)

        assert response.status_code == 422


class TestRuleTableEndpoint:
    async def test_get_rule_table(self, client: AsyncClient):
        response = await client.get("/api/v1/rule-tables/2024-03-31")

        assert response.status_code == 200
        data = response.json()
        assert data["version_id"] == "TEST-2024.1"
        assert data["effective_end"] is None
        assert data["payload"]["minimum_wage"] == "60000"

    async def test_unknown_date(self, client: AsyncClient):
        response = await client.get("/api/v1/rule-tables/2019-01-01")

        assert response.status_code == 404


class TestWithoutRuleTables:
    async def test_calculation_unavailable(self, settings, golden_payload):
        app = create_app(provider=None, settings=settings)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            health = await ac.get("/health")
            response = await ac.post("/api/v1/payroll/calculate", json=golden_payload)

        assert health.json()["status"] == "degraded"
        assert response.status_code == 503
