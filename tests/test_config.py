"""Tests for settings and database wiring."""

import pytest
from sqlalchemy import inspect

from payroll_calc.config import Settings, get_settings
from payroll_calc.database import create_tables, get_engine


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("RULE_TABLE_SOURCE", "BATCH_MAX_WORKERS", "ENGINE_VERSION", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.rule_table_source == "file"
        assert settings.batch_max_workers == 4
        assert settings.engine_version == "1.0.0"
        assert settings.log_level == "INFO"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("RULE_TABLE_SOURCE", "DATABASE")
        monkeypatch.setenv("BATCH_MAX_WORKERS", "8")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.rule_table_source == "database"
        assert settings.batch_max_workers == 8
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert get_settings() is settings

    def test_unknown_rule_table_source(self, monkeypatch):
        monkeypatch.setenv("RULE_TABLE_SOURCE", "s3")

        with pytest.raises(ValueError, match="RULE_TABLE_SOURCE"):
            Settings.from_env()

    def test_worker_count_validated(self, monkeypatch):
        monkeypatch.setenv("BATCH_MAX_WORKERS", "0")

        with pytest.raises(ValueError, match="BATCH_MAX_WORKERS"):
            Settings.from_env()


class TestDatabase:
    async def test_create_tables(self):
        engine = get_engine("sqlite+aiosqlite:///:memory:")
        try:
            await create_tables(engine)
            async with engine.connect() as conn:
                tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        finally:
            await engine.dispose()

        assert tables == ["rule_table_version"]
