"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_calc.api.routes import health_router, payroll_router, rule_tables_router
from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.config import Settings, get_settings
from payroll_calc.database import dispose_db, get_session
from payroll_calc.errors import PayrollCalculationError
from payroll_calc.rules.provider import InMemoryRuleTableProvider, load_rule_tables
from payroll_calc.rules.store import load_rule_tables_from_db

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "INVALID_INPUT": 422,
    "BLOCKING_VIOLATION": 422,
    "RULE_TABLE_UNRESOLVED": 404,
}


async def load_provider(settings: Settings) -> InMemoryRuleTableProvider:
    """Load rule tables from the configured source."""
    if settings.rule_table_source == "database":
        async with get_session() as session:
            return await load_rule_tables_from_db(session)
    return load_rule_tables(settings.rule_table_path)


def create_app(
    provider: InMemoryRuleTableProvider | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing a provider skips loading rule tables at startup.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        if app.state.rule_provider is None:
            app.state.rule_provider = await load_provider(settings)
        yield
        # Shutdown
        if settings.rule_table_source == "database":
            await dispose_db()

    app = FastAPI(
        title="Payroll Calculation API",
        description="Deterministic payroll calculation engine",
        version=settings.engine_version,
        lifespan=lifespan,
    )
    app.state.rule_provider = provider
    app.state.assembler = PayrollRecordAssembler(engine_version=settings.engine_version)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollCalculationError)
    async def calculation_exception_handler(
        request: Request, exc: PayrollCalculationError
    ) -> JSONResponse:
        """Translate engine errors into structured error bodies."""
        status_code = ERROR_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error("Calculation invariant failed on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(rule_tables_router, prefix="/api/v1")

    return app
