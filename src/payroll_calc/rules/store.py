"""Database-backed rule table loading.

The database is read once, at startup, into an InMemoryRuleTableProvider.
Calculations never query it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_calc.models import RuleTableVersionRecord
from payroll_calc.rules.provider import (
    InMemoryRuleTableProvider,
    parse_rule_table,
    rule_table_to_payload,
)
from payroll_calc.rules.types import RuleTableVersion

logger = logging.getLogger(__name__)


def compute_logic_hash(payload: dict) -> str:
    """Hash of a rule table payload, stored to detect silent edits."""
    json_str = json.dumps(payload, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()


async def load_rule_tables_from_db(session: AsyncSession) -> InMemoryRuleTableProvider:
    """Load every stored version into a provider.

    Raises:
        ValueError: If a stored payload no longer matches its logic hash.
    """
    result = await session.execute(
        select(RuleTableVersionRecord).order_by(RuleTableVersionRecord.effective_start)
    )
    versions: list[RuleTableVersion] = []
    for record in result.scalars().all():
        if compute_logic_hash(record.payload_json) != record.logic_hash:
            raise ValueError(f"Rule table {record.version_id} payload does not match its hash")
        versions.append(parse_rule_table(record.payload_json))

    logger.info("Loaded %d rule table version(s) from database", len(versions))
    return InMemoryRuleTableProvider(versions)


async def save_rule_tables(
    session: AsyncSession, versions: Iterable[RuleTableVersion]
) -> list[str]:
    """Insert versions that are not stored yet. Returns the ids inserted.

    Stored versions are immutable: an existing id is skipped, never updated.
    """
    inserted: list[str] = []
    for version in versions:
        existing = await session.get(RuleTableVersionRecord, version.version_id)
        if existing is not None:
            logger.info("Rule table %s already stored, skipping", version.version_id)
            continue

        payload = rule_table_to_payload(version)
        session.add(
            RuleTableVersionRecord(
                version_id=version.version_id,
                effective_start=version.effective_start,
                effective_end=version.effective_end,
                logic_hash=compute_logic_hash(payload),
                payload_json=payload,
            )
        )
        inserted.append(version.version_id)

    await session.flush()
    return inserted
