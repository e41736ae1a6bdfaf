"""Rule table value types.

A rule table version is an immutable snapshot of one jurisdiction's payroll
constants. Calculators receive it as an explicit argument; nothing in the
engine looks one up on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum


class TaxBasis(str, Enum):
    """Period the income tax brackets are expressed in."""

    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class OvertimeCategory(str, Enum):
    """Overtime hours priced at their own multiplier instead of the tiers."""

    NIGHT = "NIGHT"
    WEEKEND = "WEEKEND"
    HOLIDAY = "HOLIDAY"


class ContributionPayer(str, Enum):
    """Who bears a social contribution."""

    EMPLOYEE = "EMPLOYEE"
    EMPLOYER = "EMPLOYER"


@dataclass(frozen=True)
class TaxBracket:
    """Progressive tax bracket.

    The bracket's upper bound is the next bracket's lower bound; the last
    bracket is open-ended.
    """

    lower_bound: Decimal
    rate: Decimal  # As decimal, e.g., 0.20 for 20%


@dataclass(frozen=True)
class ContributionScheme:
    """Mandatory social contribution with its own base ceiling."""

    code: str
    name: str
    rate: Decimal
    ceiling: Decimal | None = None  # None = whole gross is the base
    payer: ContributionPayer = ContributionPayer.EMPLOYEE

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("contribution code is required")
        if not Decimal("0") <= self.rate <= Decimal("1"):
            raise ValueError(f"contribution {self.code}: rate must be between 0 and 1")
        if self.ceiling is not None and self.ceiling < 0:
            raise ValueError(f"contribution {self.code}: ceiling cannot be negative")


@dataclass(frozen=True)
class OvertimeTier:
    """Overtime premium applying from ``hour_range_start`` overtime hours on."""

    hour_range_start: Decimal
    multiplier: Decimal


@dataclass(frozen=True)
class RuleTableVersion:
    """Versioned snapshot of jurisdiction constants.

    Attributes:
        version_id: Stable identifier recorded on every result.
        effective_start: First date the version applies to.
        effective_end: Last date it applies to. None = open-ended.
        minor_unit: Currency quantum, e.g. Decimal("0.01").
        minimum_wage: Monthly floor for full-time permanent contracts.
        tax_brackets: Ascending (lower_bound, rate) pairs.
        tax_basis: Whether brackets are monthly or annual amounts.
        contributions: Social contribution schemes.
        overtime_tiers: Ascending (hour_range_start, multiplier) pairs.
        overtime_cap_hours: Legal overtime cap for one pay period.
        standard_weekly_hours: Legal full-time week.
        max_weekly_hours: Legal maximum week including overtime.
        max_daily_hours: Legal maximum day including overtime.
        legal_monthly_working_days: Divisor for the daily rate.
        delay_penalty_cap_fraction: Cap on one day's delay penalty as a
            fraction of the daily rate.
        delay_tolerance_minutes: Grace period before lateness counts.
        max_late_days: Late days tolerated per period before a warning.
        early_departure_threshold_minutes: Early departures shorter than
            this are not counted towards the pattern warning.
        max_early_departure_days: Counted early departures tolerated.
        working_weekdays: Weekday numbers (Monday=0) that are working days.
        max_weekly_overtime_hours: Overtime tolerated in one ISO week before
            a warning.
        night_start, night_end: Night window; overtime inside it is NIGHT.
        night_overtime_multiplier, weekend_overtime_multiplier,
        holiday_overtime_multiplier: Category premiums. None = those hours
            go through the tiers like any other overtime.
        public_holidays: Dates whose overtime is HOLIDAY.
    """

    version_id: str
    effective_start: date
    effective_end: date | None
    minimum_wage: Decimal
    tax_brackets: tuple[TaxBracket, ...]
    contributions: tuple[ContributionScheme, ...]
    overtime_tiers: tuple[OvertimeTier, ...]
    overtime_cap_hours: Decimal
    currency: str = "XOF"
    minor_unit: Decimal = Decimal("0.01")
    tax_basis: TaxBasis = TaxBasis.MONTHLY
    standard_weekly_hours: Decimal = Decimal("40")
    max_weekly_hours: Decimal = Decimal("60")
    max_daily_hours: Decimal = Decimal("12")
    legal_monthly_working_days: Decimal = Decimal("22")
    delay_penalty_cap_fraction: Decimal = Decimal("0.5")
    delay_tolerance_minutes: int = 5
    max_late_days: int = 5
    early_departure_threshold_minutes: int = 15
    max_early_departure_days: int = 5
    working_weekdays: frozenset[int] = field(default_factory=lambda: frozenset(range(5)))
    max_weekly_overtime_hours: Decimal = Decimal("20")
    night_start: time = time(22, 0)
    night_end: time = time(6, 0)
    night_overtime_multiplier: Decimal | None = None
    weekend_overtime_multiplier: Decimal | None = None
    holiday_overtime_multiplier: Decimal | None = None
    public_holidays: frozenset[date] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate the table shape."""
        if not self.version_id:
            raise ValueError("version_id is required")
        if self.effective_end is not None and self.effective_end < self.effective_start:
            raise ValueError("effective_end cannot be before effective_start")
        if self.minor_unit <= 0:
            raise ValueError("minor_unit must be positive")
        if self.minimum_wage < 0:
            raise ValueError("minimum_wage cannot be negative")

        bounds = [b.lower_bound for b in self.tax_brackets]
        if bounds != sorted(bounds) or len(set(bounds)) != len(bounds):
            raise ValueError("tax brackets must have strictly ascending lower bounds")
        if any(not Decimal("0") <= b.rate <= Decimal("1") for b in self.tax_brackets):
            raise ValueError("tax bracket rates must be between 0 and 1")

        starts = [t.hour_range_start for t in self.overtime_tiers]
        if not starts:
            raise ValueError("at least one overtime tier is required")
        if starts != sorted(starts) or len(set(starts)) != len(starts):
            raise ValueError("overtime tiers must have strictly ascending starts")
        if starts and starts[0] != 0:
            raise ValueError("first overtime tier must start at 0 hours")
        if any(t.multiplier < 1 for t in self.overtime_tiers):
            raise ValueError("overtime multipliers cannot be below 1")

        # Net pay stays non-negative only if withholding never exceeds 100%.
        top_rate = max((b.rate for b in self.tax_brackets), default=Decimal("0"))
        employee_rates = sum(
            (c.rate for c in self.contributions if c.payer == ContributionPayer.EMPLOYEE),
            Decimal("0"),
        )
        if top_rate + employee_rates > 1:
            raise ValueError("combined marginal withholding rate exceeds 100%")

        if self.legal_monthly_working_days <= 0:
            raise ValueError("legal_monthly_working_days must be positive")
        if not Decimal("0") <= self.delay_penalty_cap_fraction <= Decimal("1"):
            raise ValueError("delay_penalty_cap_fraction must be between 0 and 1")
        if self.delay_tolerance_minutes < 0:
            raise ValueError("delay_tolerance_minutes cannot be negative")
        if not self.working_weekdays or not self.working_weekdays <= frozenset(range(7)):
            raise ValueError("working_weekdays must be a non-empty subset of 0..6")
        if self.max_weekly_overtime_hours < 0:
            raise ValueError("max_weekly_overtime_hours cannot be negative")
        if self.night_start == self.night_end:
            raise ValueError("night window cannot be empty")
        for category in OvertimeCategory:
            multiplier = self.overtime_multiplier_for(category)
            if multiplier is not None and multiplier < 1:
                raise ValueError(f"{category.value.lower()} overtime multiplier cannot be below 1")

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if version is active on a given date."""
        if self.effective_start > as_of_date:
            return False
        if self.effective_end is not None and self.effective_end < as_of_date:
            return False
        return True

    @property
    def employee_contributions(self) -> tuple[ContributionScheme, ...]:
        return tuple(c for c in self.contributions if c.payer == ContributionPayer.EMPLOYEE)

    @property
    def employer_contributions(self) -> tuple[ContributionScheme, ...]:
        return tuple(c for c in self.contributions if c.payer == ContributionPayer.EMPLOYER)

    def overtime_multiplier_for(self, category: OvertimeCategory) -> Decimal | None:
        if category == OvertimeCategory.NIGHT:
            return self.night_overtime_multiplier
        if category == OvertimeCategory.WEEKEND:
            return self.weekend_overtime_multiplier
        return self.holiday_overtime_multiplier

    def overtime_category_for(self, day: date) -> OvertimeCategory | None:
        """Category every overtime minute of ``day`` falls in, if any.

        Holidays take precedence over weekends. Night overtime depends on
        clock times and is classified per shift, not per day.
        """
        if day in self.public_holidays:
            return OvertimeCategory.HOLIDAY
        if day.weekday() not in self.working_weekdays:
            return OvertimeCategory.WEEKEND
        return None
