"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    rule_tables: str
    rule_table_versions: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(request: Request) -> HealthResponse:
    """Check API health and whether rule tables are loaded."""
    provider = getattr(request.app.state, "rule_provider", None)
    versions = len(provider.versions) if provider is not None else 0

    return HealthResponse(
        status="healthy" if versions else "degraded",
        timestamp=datetime.now(timezone.utc),
        rule_tables="loaded" if versions else "missing",
        rule_table_versions=versions,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
