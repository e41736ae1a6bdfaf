"""Property-based tests for calculation invariants.

Every generated request must produce a result that reconciles: net equals
gross minus deductions, the payslip lines add up to both, and the outcome
does not depend on the order attendance arrives in.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_calc.calculators.engine import PayrollRecordAssembler
from payroll_calc.calculators.line_builder import LineItemBuilder
from payroll_calc.calculators.types import (
    Allowance,
    AllowanceKind,
    AttendanceEvent,
    AttendanceType,
    ContractCategory,
    EmployeeCompensationProfile,
    PayPeriod,
    PayrollCalculationRequest,
)
from payroll_calc.rules import (
    ContributionPayer,
    ContributionScheme,
    InMemoryRuleTableProvider,
    OvertimeTier,
    RuleTableVersion,
    TaxBracket,
)

CENT = Decimal("0.01")
PERIOD = PayPeriod(2024, 3)
WEEKDAYS = [d for d in PERIOD.days() if d.weekday() < 5]

PROVIDER = InMemoryRuleTableProvider(
    [
        RuleTableVersion(
            version_id="PROP-2024.1",
            effective_start=date(2024, 1, 1),
            effective_end=None,
            minimum_wage=Decimal("60000"),
            tax_brackets=(
                TaxBracket(lower_bound=Decimal("0"), rate=Decimal("0")),
                TaxBracket(lower_bound=Decimal("100000"), rate=Decimal("0.10")),
                TaxBracket(lower_bound=Decimal("500000"), rate=Decimal("0.35")),
            ),
            contributions=(
                ContributionScheme("PENSION", "Pension", Decimal("0.06"), Decimal("1800000")),
                ContributionScheme("HEALTH", "Health", Decimal("0.07"), Decimal("100000")),
                ContributionScheme(
                    "FAMILY",
                    "Family allowance",
                    Decimal("0.07"),
                    Decimal("1800000"),
                    ContributionPayer.EMPLOYER,
                ),
            ),
            overtime_tiers=(
                OvertimeTier(Decimal("0"), Decimal("1.25")),
                OvertimeTier(Decimal("8"), Decimal("1.50")),
            ),
            overtime_cap_hours=Decimal("40"),
        )
    ]
)

ASSEMBLER = PayrollRecordAssembler(clock=lambda: datetime(2024, 4, 1, tzinfo=timezone.utc))


def _at(minutes: int) -> time:
    return time(*divmod(minutes, 60))


def _event(work_date: date, kind: AttendanceType, late: int, extra: int) -> AttendanceEvent:
    start = 8 * 60
    end = 16 * 60
    if kind in (AttendanceType.ABSENT, AttendanceType.SICK_LEAVE, AttendanceType.VACATION):
        actual = (None, None)
    elif kind == AttendanceType.HALF_DAY:
        actual = (_at(start), _at(12 * 60))
    elif kind == AttendanceType.LATE:
        actual = (_at(start + late), _at(end + extra))
    else:
        actual = (_at(start), _at(end + extra))
    return AttendanceEvent(
        work_date=work_date,
        attendance_type=kind,
        scheduled_start=_at(start),
        scheduled_end=_at(end),
        actual_start=actual[0],
        actual_end=actual[1],
    )


attendance_days = st.lists(
    st.tuples(
        st.sampled_from(WEEKDAYS),
        st.sampled_from(list(AttendanceType)),
        st.integers(min_value=0, max_value=120),
        st.integers(min_value=0, max_value=420),
    ),
    unique_by=lambda day: day[0],
    max_size=12,
)

amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("2000000"), places=2, allow_nan=False
)


@st.composite
def payroll_requests(draw) -> PayrollCalculationRequest:
    hire_date = draw(st.none() | st.sampled_from(PERIOD.days()))
    profile = EmployeeCompensationProfile(
        employee_id="EMP-PROP",
        base_salary=draw(amounts),
        contract_category=ContractCategory.FIXED_TERM,
        scheduled_weekly_hours=Decimal("40"),
        scheduled_monthly_hours=draw(st.sampled_from([None, Decimal("160"), Decimal("173.33")])),
        hire_date=hire_date,
    )
    # Days before hiring are rejected as input errors.
    events = tuple(
        _event(*day)
        for day in draw(attendance_days)
        if hire_date is None or day[0] >= hire_date
    )
    allowances = tuple(
        Allowance(f"A{i}", amount, kind)
        for i, (amount, kind) in enumerate(
            draw(st.lists(st.tuples(amounts, st.sampled_from(list(AllowanceKind))), max_size=3))
        )
    )
    return PayrollCalculationRequest(
        profile=profile, period=PERIOD, attendance=events, allowances=allowances
    )


class TestInvariantProperties:
    @given(payroll_requests())
    @settings(max_examples=75, deadline=None)
    def test_result_reconciles(self, payroll_request):
        result = ASSEMBLER.calculate(payroll_request, PROVIDER)
        lines = list(result.lines)

        assert result.net_salary == result.gross_salary - result.total_deductions
        assert LineItemBuilder.calculate_gross_from_lines(lines) == result.gross_salary
        assert LineItemBuilder.calculate_net_from_lines(lines) == result.net_salary
        assert LineItemBuilder.validate_line_signs(lines) == []
        for name, amount in result.monetary_fields().items():
            if name != "net_salary":
                assert amount >= 0, name
            if name != "base_salary":
                assert amount == amount.quantize(CENT), name

    @given(payroll_requests())
    @settings(max_examples=50, deadline=None)
    def test_attendance_order_independent(self, payroll_request):
        reversed_request = PayrollCalculationRequest(
            profile=payroll_request.profile,
            period=payroll_request.period,
            attendance=tuple(reversed(payroll_request.attendance)),
            allowances=tuple(reversed(payroll_request.allowances)),
        )

        first = ASSEMBLER.calculate(payroll_request, PROVIDER)
        second = ASSEMBLER.calculate(reversed_request, PROVIDER)

        assert first.result_fingerprint == second.result_fingerprint

    @given(payroll_requests())
    @settings(max_examples=50, deadline=None)
    def test_deductions_never_exceed_gross(self, payroll_request):
        result = ASSEMBLER.calculate(payroll_request, PROVIDER)

        assert result.total_deductions <= result.gross_salary
