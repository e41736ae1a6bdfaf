"""Tests for database-backed rule table storage."""

from dataclasses import replace
from datetime import date

import pytest
from sqlalchemy import select

from payroll_calc.models import RuleTableVersionRecord
from payroll_calc.rules.provider import rule_table_to_payload
from payroll_calc.rules.store import (
    compute_logic_hash,
    load_rule_tables_from_db,
    save_rule_tables,
)


class TestRuleTableStore:
    """Round trip through the rule_table_version table."""

    async def test_save_and_load(self, session, rules):
        inserted = await save_rule_tables(session, [rules])

        provider = await load_rule_tables_from_db(session)

        assert inserted == ["TEST-2024.1"]
        assert provider.versions == (rules,)

    async def test_stored_hash_matches_payload(self, session, rules):
        await save_rule_tables(session, [rules])

        record = await session.get(RuleTableVersionRecord, "TEST-2024.1")

        assert record.logic_hash == compute_logic_hash(rule_table_to_payload(rules))
        assert record.is_active_on(date(2024, 3, 31))

    async def test_existing_version_is_skipped(self, session, rules):
        await save_rule_tables(session, [rules])

        changed = replace(rules, minimum_wage=rules.minimum_wage + 1)
        inserted = await save_rule_tables(session, [changed])

        assert inserted == []
        provider = await load_rule_tables_from_db(session)
        assert provider.resolve(date(2024, 3, 31)).minimum_wage == rules.minimum_wage

    async def test_versions_loaded_in_effective_order(self, session, rules):
        older = replace(
            rules,
            version_id="TEST-2023.1",
            effective_start=date(2023, 1, 1),
            effective_end=date(2023, 12, 31),
        )
        await save_rule_tables(session, [rules, older])

        provider = await load_rule_tables_from_db(session)

        assert [v.version_id for v in provider.versions] == ["TEST-2023.1", "TEST-2024.1"]

    async def test_tampered_payload_rejected(self, session, rules):
        await save_rule_tables(session, [rules])
        result = await session.execute(select(RuleTableVersionRecord))
        record = result.scalars().one()

        payload = dict(record.payload_json)
        payload["minimum_wage"] = "1"
        record.payload_json = payload
        await session.flush()

        with pytest.raises(ValueError, match="does not match its hash"):
            await load_rule_tables_from_db(session)
