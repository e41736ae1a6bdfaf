"""Seed script for rule table versions.

Run with:
    python scripts/seed_rule_tables.py [path/to/rule_tables.json]

Loads the JSON rule tables (default: RULE_TABLE_PATH) and stores every
version not already present. Stored versions are never updated.
"""

from __future__ import annotations

import asyncio
import sys

from payroll_calc.config import get_settings
from payroll_calc.database import create_tables, get_session, init_db
from payroll_calc.rules.provider import load_rule_tables
from payroll_calc.rules.store import save_rule_tables


async def main(path: str | None = None) -> None:
    """Run seed script."""
    path = path or get_settings().rule_table_path
    print(f"Seeding rule tables from {path}...")

    provider = load_rule_tables(path)
    engine, _ = init_db()
    await create_tables(engine)

    async with get_session() as session:
        inserted = await save_rule_tables(session, provider.versions)

    for version_id in inserted:
        print(f"Created rule table {version_id}")
    print(f"\nDone! {len(inserted)} of {len(provider.versions)} version(s) seeded.")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
