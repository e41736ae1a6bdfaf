"""Stored rule table versions."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import CheckConstraint, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_calc.models.base import Base, TimestampMixin


class RuleTableVersionRecord(Base, TimestampMixin):
    """Versioned jurisdiction constants with effective dating."""

    __tablename__ = "rule_table_version"

    version_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    effective_start: Mapped[date] = mapped_column(Date, nullable=False)
    effective_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    logic_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    payload_json: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint(
            "effective_end IS NULL OR effective_end >= effective_start",
            name="rule_table_version_dates_check",
        ),
    )

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if version is active on a given date."""
        if self.effective_start > as_of_date:
            return False
        if self.effective_end is not None and self.effective_end < as_of_date:
            return False
        return True
