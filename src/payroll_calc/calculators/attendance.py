"""Time and attendance aggregation."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal

from payroll_calc.calculators.types import (
    AttendanceEvent,
    AttendanceSummary,
    AttendanceType,
    EmployeeCompensationProfile,
    PayPeriod,
)
from payroll_calc.errors import InvalidInputError
from payroll_calc.rules.types import OvertimeCategory, RuleTableVersion

MINUTES_PER_DAY = 24 * 60
ONE = Decimal("1")
HALF = Decimal("0.5")
ZERO = Decimal("0")


def _clock_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _minutes_between(start: time, end: time) -> int:
    """Minutes from start to end; an end before the start crosses midnight."""
    minutes = _clock_minutes(end) - _clock_minutes(start)
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def _signed_offset(anchor: time, moment: time) -> int:
    """Minutes from anchor to moment, taking whichever side of anchor is nearer.

    23:50 against a 00:00 anchor is -10 (early), 00:30 against 22:00 is +150.
    """
    offset = (_clock_minutes(moment) - _clock_minutes(anchor)) % MINUTES_PER_DAY
    if offset >= MINUTES_PER_DAY // 2:
        offset -= MINUTES_PER_DAY
    return offset


def _night_minutes(start: int, end: int, rules: RuleTableVersion) -> int:
    """Minutes of [start, end) inside the night window.

    Both bounds count from the midnight before the shift began; end may run
    into the next day.
    """
    window_start = _clock_minutes(rules.night_start)
    window_length = _minutes_between(rules.night_start, rules.night_end)
    total = 0
    for day in (-1, 0, 1):
        lower = day * MINUTES_PER_DAY + window_start
        upper = lower + window_length
        total += max(0, min(end, upper) - max(start, lower))
    return total


def _week_key(day: date) -> str:
    iso_year, week, _ = day.isocalendar()
    return f"{iso_year}-W{week:02d}"


@dataclass(frozen=True)
class DayTotals:
    """Contribution of a single attendance day to the period summary."""

    work_date: date
    scheduled_minutes: int = 0
    worked_minutes: int = 0
    overtime_minutes: int = 0
    delay_minutes: int = 0
    early_departure_minutes: int = 0
    unauthorized_absence_days: Decimal = ZERO
    unpaid_leave_days: Decimal = ZERO
    paid_leave_days: Decimal = ZERO
    night_overtime_minutes: int = 0
    weekend_overtime_minutes: int = 0
    holiday_overtime_minutes: int = 0


class TimeAndAttendanceAggregator:
    """Reduces a period's attendance events into an AttendanceSummary.

    Each day is evaluated on its own and the day totals are summed as
    integers (minutes) or exact decimals (half days), so the summary does
    not depend on the order events are supplied in.
    """

    @staticmethod
    def check_events(
        events: Iterable[AttendanceEvent],
        period: PayPeriod,
        profile: EmployeeCompensationProfile | None = None,
    ) -> list[str]:
        """Return input problems (empty if the events are usable).

        With a profile, days before the hire date or after the termination
        date are rejected too; pro-rating has already taken them out of pay.
        """
        problems: list[str] = []
        seen: set[date] = set()
        for event in events:
            if not period.contains(event.work_date):
                problems.append(f"attendance on {event.work_date} is outside period {period}")
            if profile is not None:
                if profile.hire_date is not None and event.work_date < profile.hire_date:
                    problems.append(
                        f"attendance on {event.work_date} is before hire date {profile.hire_date}"
                    )
                if (
                    profile.termination_date is not None
                    and event.work_date > profile.termination_date
                ):
                    problems.append(
                        f"attendance on {event.work_date} is after termination date "
                        f"{profile.termination_date}"
                    )
            if event.work_date in seen:
                problems.append(f"duplicate attendance for {event.work_date}")
            seen.add(event.work_date)
            if event.break_minutes < 0:
                problems.append(f"negative break on {event.work_date}")
            if (event.scheduled_start is None) != (event.scheduled_end is None):
                problems.append(f"incomplete schedule on {event.work_date}")
        return problems

    @staticmethod
    def default_daily_minutes(
        profile: EmployeeCompensationProfile, rules: RuleTableVersion
    ) -> int:
        """Scheduled minutes of a working day without explicit schedule times."""
        per_day = profile.scheduled_weekly_hours * 60 / len(rules.working_weekdays)
        return int(per_day.quantize(ONE, rounding=ROUND_HALF_UP))

    def aggregate(
        self,
        events: Iterable[AttendanceEvent],
        profile: EmployeeCompensationProfile,
        period: PayPeriod,
        rules: RuleTableVersion,
    ) -> AttendanceSummary:
        """Build the attendance summary for one employee and period.

        Raises:
            InvalidInputError: If events fall outside the period or the
                employment window, or repeat a day.
        """
        events = sorted(events, key=lambda e: e.work_date)
        problems = self.check_events(events, period, profile)
        if problems:
            raise InvalidInputError(problems)

        default_minutes = self.default_daily_minutes(profile, rules)
        days = [self.evaluate_day(e, default_minutes, rules) for e in events]

        worked_by_week: dict[str, int] = defaultdict(int)
        overtime_by_week: dict[str, int] = defaultdict(int)
        for day in days:
            if day.worked_minutes:
                worked_by_week[_week_key(day.work_date)] += day.worked_minutes
            if day.overtime_minutes:
                overtime_by_week[_week_key(day.work_date)] += day.overtime_minutes

        return AttendanceSummary(
            scheduled_minutes=sum(d.scheduled_minutes for d in days),
            worked_minutes=sum(d.worked_minutes for d in days),
            overtime_minutes=sum(d.overtime_minutes for d in days),
            unauthorized_absence_days=sum((d.unauthorized_absence_days for d in days), ZERO),
            unpaid_leave_days=sum((d.unpaid_leave_days for d in days), ZERO),
            paid_leave_days=sum((d.paid_leave_days for d in days), ZERO),
            days_recorded=len(days),
            delay_minutes_by_day=tuple(
                (d.work_date, d.delay_minutes) for d in days if d.delay_minutes > 0
            ),
            early_departure_minutes_by_day=tuple(
                (d.work_date, d.early_departure_minutes)
                for d in days
                if d.early_departure_minutes > 0
            ),
            worked_minutes_by_day=tuple(
                (d.work_date, d.worked_minutes) for d in days if d.worked_minutes > 0
            ),
            worked_minutes_by_week=tuple(sorted(worked_by_week.items())),
            overtime_minutes_by_week=tuple(sorted(overtime_by_week.items())),
            night_overtime_minutes=sum(d.night_overtime_minutes for d in days),
            weekend_overtime_minutes=sum(d.weekend_overtime_minutes for d in days),
            holiday_overtime_minutes=sum(d.holiday_overtime_minutes for d in days),
        )

    def evaluate_day(
        self,
        event: AttendanceEvent,
        default_minutes: int,
        rules: RuleTableVersion,
    ) -> DayTotals:
        """Evaluate one attendance day."""
        if event.scheduled_start is not None and event.scheduled_end is not None:
            scheduled = max(
                0, _minutes_between(event.scheduled_start, event.scheduled_end) - event.break_minutes
            )
        elif event.work_date.weekday() in rules.working_weekdays:
            scheduled = default_minutes
        else:
            scheduled = 0

        kind = event.attendance_type

        if kind.is_unauthorized:
            return DayTotals(event.work_date, scheduled, unauthorized_absence_days=ONE)

        if kind.is_leave:
            if event.paid is False:
                return DayTotals(event.work_date, scheduled, unpaid_leave_days=ONE)
            return DayTotals(event.work_date, scheduled, paid_leave_days=ONE)

        # Presence day without clock times counts as a full unauthorized absence.
        if event.actual_start is None or event.actual_end is None:
            return DayTotals(event.work_date, scheduled, unauthorized_absence_days=ONE)

        span = _minutes_between(event.actual_start, event.actual_end)
        worked = max(0, span - event.break_minutes)
        overtime = max(0, worked - scheduled)

        delay = 0
        early = 0
        if event.scheduled_start is not None and event.scheduled_end is not None:
            # Arrival and departure are placed on the shift's own timeline,
            # starting at the scheduled start, so overnight shifts compare.
            arrival = _signed_offset(event.scheduled_start, event.actual_start)
            departure = arrival + span
            if kind == AttendanceType.LATE:
                delay = max(0, arrival - rules.delay_tolerance_minutes)
            if kind != AttendanceType.HALF_DAY and overtime == 0:
                shift_length = _minutes_between(event.scheduled_start, event.scheduled_end)
                early = max(0, shift_length - departure)

        night = weekend = holiday = 0
        if overtime:
            category = rules.overtime_category_for(event.work_date)
            if category == OvertimeCategory.HOLIDAY:
                holiday = overtime
            elif category == OvertimeCategory.WEEKEND:
                weekend = overtime
            else:
                # Overtime is the last stretch of the shift.
                shift_end = _clock_minutes(event.actual_start) + span
                night = _night_minutes(shift_end - overtime, shift_end, rules)

        unauthorized = ZERO
        if kind == AttendanceType.HALF_DAY and event.paid is not True:
            unauthorized = HALF

        return DayTotals(
            work_date=event.work_date,
            scheduled_minutes=scheduled,
            worked_minutes=worked,
            overtime_minutes=overtime,
            delay_minutes=delay,
            early_departure_minutes=early,
            unauthorized_absence_days=unauthorized,
            night_overtime_minutes=night,
            weekend_overtime_minutes=weekend,
            holiday_overtime_minutes=holiday,
        )
