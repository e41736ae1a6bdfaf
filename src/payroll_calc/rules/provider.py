"""Rule table resolution by effective date.

Rule tables are loaded once (from a JSON document or the database) into an
``InMemoryRuleTableProvider`` and only read afterwards, so a single provider
can be shared by every worker of a payroll run without locking.

Payload structure (one entry per version):
{
    "version_id": "SN-2024.1",
    "effective_start": "2024-01-01",
    "effective_end": null,
    "currency": "XOF",
    "minor_unit": "0.01",
    "minimum_wage": "60000",
    "tax_basis": "ANNUAL",
    "tax_brackets": [{"lower_bound": "630000", "rate": "0.20"}, ...],
    "contributions": [
        {"code": "IPRES", "name": "...", "rate": "0.056", "ceiling": "432000",
         "payer": "EMPLOYEE"},
        ...
    ],
    "overtime_tiers": [{"start": "0", "multiplier": "1.25"}, ...],
    "overtime_cap_hours": "80",
    ...optional limits...
}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Protocol

from payroll_calc.errors import RuleTableUnresolvedError
from payroll_calc.rules.types import (
    ContributionPayer,
    ContributionScheme,
    OvertimeTier,
    RuleTableVersion,
    TaxBasis,
    TaxBracket,
)

logger = logging.getLogger(__name__)

_OPTIONAL_DECIMALS = (
    "standard_weekly_hours",
    "max_weekly_hours",
    "max_daily_hours",
    "legal_monthly_working_days",
    "delay_penalty_cap_fraction",
    "max_weekly_overtime_hours",
    "night_overtime_multiplier",
    "weekend_overtime_multiplier",
    "holiday_overtime_multiplier",
)
_OPTIONAL_INTS = (
    "delay_tolerance_minutes",
    "max_late_days",
    "early_departure_threshold_minutes",
    "max_early_departure_days",
)


class RuleTableProvider(Protocol):
    """Resolves the rule table version for an effective date."""

    def resolve(self, effective_date: date) -> RuleTableVersion:
        """Return the applicable version or raise RuleTableUnresolvedError."""
        ...


class InMemoryRuleTableProvider:
    """Provider over a fixed set of non-overlapping versions."""

    def __init__(self, versions: Iterable[RuleTableVersion]):
        ordered = sorted(versions, key=lambda v: v.effective_start)
        ids = [v.version_id for v in ordered]
        if len(set(ids)) != len(ids):
            raise ValueError("rule table version ids must be unique")
        for previous, current in zip(ordered, ordered[1:]):
            if previous.effective_end is None or previous.effective_end >= current.effective_start:
                raise ValueError(
                    f"rule table versions {previous.version_id} and "
                    f"{current.version_id} overlap"
                )
        self._versions: tuple[RuleTableVersion, ...] = tuple(ordered)

    @property
    def versions(self) -> tuple[RuleTableVersion, ...]:
        return self._versions

    def resolve(self, effective_date: date) -> RuleTableVersion:
        for version in self._versions:
            if version.is_active_on(effective_date):
                return version
        raise RuleTableUnresolvedError(effective_date)

    def get(self, version_id: str) -> RuleTableVersion:
        """Look up a version by id (used to re-verify a stored result)."""
        for version in self._versions:
            if version.version_id == version_id:
                return version
        raise KeyError(version_id)


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


def _date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_rule_table(payload: dict[str, Any]) -> RuleTableVersion:
    """Build a RuleTableVersion from its JSON payload.

    Raises:
        ValueError: If the payload is missing keys or describes an invalid table.
    """
    try:
        brackets = tuple(
            TaxBracket(lower_bound=_decimal(b["lower_bound"]), rate=_decimal(b["rate"]))
            for b in payload.get("tax_brackets", [])
        )
        contributions = tuple(
            ContributionScheme(
                code=c["code"],
                name=c.get("name", c["code"]),
                rate=_decimal(c["rate"]),
                ceiling=_decimal(c["ceiling"]) if c.get("ceiling") is not None else None,
                payer=ContributionPayer(c.get("payer", ContributionPayer.EMPLOYEE.value)),
            )
            for c in payload.get("contributions", [])
        )
        tiers = tuple(
            OvertimeTier(hour_range_start=_decimal(t["start"]), multiplier=_decimal(t["multiplier"]))
            for t in payload.get("overtime_tiers", [])
        )

        optional: dict[str, Any] = {}
        for key in _OPTIONAL_DECIMALS:
            if payload.get(key) is not None:
                optional[key] = _decimal(payload[key])
        for key in _OPTIONAL_INTS:
            if payload.get(key) is not None:
                optional[key] = int(payload[key])
        if payload.get("working_weekdays") is not None:
            optional["working_weekdays"] = frozenset(int(d) for d in payload["working_weekdays"])
        for key in ("night_start", "night_end"):
            if payload.get(key):
                optional[key] = time.fromisoformat(payload[key])
        if payload.get("public_holidays") is not None:
            optional["public_holidays"] = frozenset(_date(d) for d in payload["public_holidays"])
        if payload.get("currency"):
            optional["currency"] = payload["currency"]
        if payload.get("minor_unit") is not None:
            optional["minor_unit"] = _decimal(payload["minor_unit"])
        if payload.get("tax_basis"):
            optional["tax_basis"] = TaxBasis(payload["tax_basis"])

        return RuleTableVersion(
            version_id=payload["version_id"],
            effective_start=_date(payload["effective_start"]),
            effective_end=(
                _date(payload["effective_end"]) if payload.get("effective_end") else None
            ),
            minimum_wage=_decimal(payload["minimum_wage"]),
            tax_brackets=brackets,
            contributions=contributions,
            overtime_tiers=tiers,
            overtime_cap_hours=_decimal(payload["overtime_cap_hours"]),
            **optional,
        )
    except KeyError as e:
        raise ValueError(f"rule table payload missing key {e}") from e
    except InvalidOperation as e:
        raise ValueError("rule table payload holds a non-numeric amount") from e


def rule_table_to_payload(version: RuleTableVersion) -> dict[str, Any]:
    """Inverse of parse_rule_table (for seeding and API responses)."""
    return {
        "version_id": version.version_id,
        "effective_start": version.effective_start.isoformat(),
        "effective_end": version.effective_end.isoformat() if version.effective_end else None,
        "currency": version.currency,
        "minor_unit": str(version.minor_unit),
        "minimum_wage": str(version.minimum_wage),
        "tax_basis": version.tax_basis.value,
        "tax_brackets": [
            {"lower_bound": str(b.lower_bound), "rate": str(b.rate)} for b in version.tax_brackets
        ],
        "contributions": [
            {
                "code": c.code,
                "name": c.name,
                "rate": str(c.rate),
                "ceiling": str(c.ceiling) if c.ceiling is not None else None,
                "payer": c.payer.value,
            }
            for c in version.contributions
        ],
        "overtime_tiers": [
            {"start": str(t.hour_range_start), "multiplier": str(t.multiplier)}
            for t in version.overtime_tiers
        ],
        "overtime_cap_hours": str(version.overtime_cap_hours),
        "standard_weekly_hours": str(version.standard_weekly_hours),
        "max_weekly_hours": str(version.max_weekly_hours),
        "max_daily_hours": str(version.max_daily_hours),
        "legal_monthly_working_days": str(version.legal_monthly_working_days),
        "delay_penalty_cap_fraction": str(version.delay_penalty_cap_fraction),
        "delay_tolerance_minutes": version.delay_tolerance_minutes,
        "max_late_days": version.max_late_days,
        "early_departure_threshold_minutes": version.early_departure_threshold_minutes,
        "max_early_departure_days": version.max_early_departure_days,
        "working_weekdays": sorted(version.working_weekdays),
        "max_weekly_overtime_hours": str(version.max_weekly_overtime_hours),
        "night_start": version.night_start.isoformat(timespec="minutes"),
        "night_end": version.night_end.isoformat(timespec="minutes"),
        "night_overtime_multiplier": _str_or_none(version.night_overtime_multiplier),
        "weekend_overtime_multiplier": _str_or_none(version.weekend_overtime_multiplier),
        "holiday_overtime_multiplier": _str_or_none(version.holiday_overtime_multiplier),
        "public_holidays": sorted(d.isoformat() for d in version.public_holidays),
    }


def load_rule_tables(path: str | Path) -> InMemoryRuleTableProvider:
    """Load every version from a JSON file into a provider.

    The file holds either a list of payloads or ``{"versions": [...]}``.
    """
    with open(path, encoding="utf-8") as f:
        document = json.load(f)

    payloads = document["versions"] if isinstance(document, dict) else document
    versions = [parse_rule_table(p) for p in payloads]
    logger.info("Loaded %d rule table version(s) from %s", len(versions), path)
    return InMemoryRuleTableProvider(versions)
