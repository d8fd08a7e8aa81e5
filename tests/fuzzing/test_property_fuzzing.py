"""
Hypothesis-based property tests for the pure payroll engines.

Properties:
- Salary normalization: daily x 26, hourly x 208
- Contributions: employee + employer == 31% of basic
- Progressive tax: monotone in income, fund members never pay the 1% slab
- Leave accrual: 0 <= accrued <= max_accrual, identical inputs give identical results
- Probation: end date is join + N calendar months, clamped
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from payroll_config import get_jurisdiction_config
from payroll_engines.contribution import calculate_contributions
from payroll_engines.leave_accrual import AccrualType, LeaveAccrualEngine, LeavePolicy
from payroll_engines.probation import probation_end_date
from payroll_engines.salary import SalaryTerms, SalaryType, normalize_monthly_salary
from payroll_engines.tax import ProgressiveTaxCalculator, TaxBracket

FY_START = date(2025, 7, 17)

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("9999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
incomes = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("50000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2040, 12, 31))


def _brackets(status: str) -> list[TaxBracket]:
    config = get_jurisdiction_config("np_2082_83")
    return [
        TaxBracket(b.min_amount, b.max_amount, b.rate)
        for b in config.brackets_for("2082/83", status)
    ]


@composite
def leave_policies(draw):
    """Any valid policy with a finite cap."""
    accrual_type = draw(st.sampled_from(list(AccrualType)))
    per_days = rate = None
    if accrual_type == AccrualType.PER_WORKING_DAYS:
        per_days = draw(st.integers(min_value=1, max_value=60))
        rate = draw(st.decimals(
            min_value=Decimal("0.5"), max_value=Decimal("5"), places=1,
        ))
    return LeavePolicy(
        code="generated",
        annual_entitlement=Decimal(draw(st.integers(min_value=0, max_value=90))),
        accrual_type=accrual_type,
        max_accrual=Decimal(draw(st.integers(min_value=0, max_value=120))),
        accrual_rate=rate,
        accrual_per_days=per_days,
    )


class TestSalaryProperties:

    @given(rate=money)
    def test_daily_is_rate_times_26(self, rate):
        terms = SalaryTerms(salary_type=SalaryType.DAILY, rate=rate)
        assert normalize_monthly_salary(terms) == rate * 26

    @given(rate=money)
    def test_hourly_is_rate_times_208(self, rate):
        terms = SalaryTerms(salary_type=SalaryType.HOURLY, rate=rate)
        assert normalize_monthly_salary(terms) == rate * 208


class TestContributionProperties:

    @given(basic=st.integers(min_value=1, max_value=10_000_000).map(Decimal))
    def test_total_is_31_percent_of_whole_basic(self, basic):
        result = calculate_contributions(basic, has_contribution_fund=True)
        assert result.total_contribution == basic * Decimal("0.31")

    @given(basic=money)
    def test_rounding_error_bounded(self, basic):
        result = calculate_contributions(basic, has_contribution_fund=True)
        assert abs(result.total_contribution - basic * Decimal("0.31")) <= Decimal("0.01")


class TestTaxProperties:

    @settings(max_examples=200)
    @given(
        a=incomes,
        b=incomes,
        status=st.sampled_from(["single", "married"]),
        has_fund=st.booleans(),
    )
    def test_monotone(self, a, b, status, has_fund):
        low, high = sorted((a, b))
        calculator = ProgressiveTaxCalculator()
        brackets = _brackets(status)
        low_tax = calculator.calculate(low, brackets, "2082/83", status, has_fund).annual_tax
        high_tax = calculator.calculate(high, brackets, "2082/83", status, has_fund).annual_tax
        assert low_tax <= high_tax

    @given(income=incomes, status=st.sampled_from(["single", "married"]))
    def test_fund_member_social_line_zero(self, income, status):
        result = ProgressiveTaxCalculator().calculate(
            income, _brackets(status), "2082/83", status, True,
        )
        assert result.breakdown[0].tax_amount == 0
        assert result.social_contribution_tax == 0


class TestLeaveAccrualProperties:

    @settings(max_examples=200)
    @given(
        policy=leave_policies(),
        days_elapsed=st.integers(min_value=-30, max_value=3000),
        join_offset=st.integers(min_value=-400, max_value=400),
    )
    def test_accrued_bounded(self, policy, days_elapsed, join_offset):
        balance = LeaveAccrualEngine().compute_balance(
            policy,
            fiscal_year_start=FY_START,
            as_of=FY_START + timedelta(days=days_elapsed),
            date_of_join=FY_START + timedelta(days=join_offset),
        )
        assert 0 <= balance.accrued <= policy.max_accrual

    @given(
        policy=leave_policies(),
        as_of=st.dates(min_value=FY_START, max_value=date(2027, 1, 1)),
        used=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=1),
    )
    def test_idempotent(self, policy, as_of, used):
        engine = LeaveAccrualEngine()
        first = engine.compute_balance(
            policy, fiscal_year_start=FY_START, as_of=as_of, used=used,
        )
        second = engine.compute_balance(
            policy, fiscal_year_start=FY_START, as_of=as_of, used=used,
        )
        assert (first.accrued, first.available) == (second.accrued, second.available)


class TestProbationProperties:

    @given(join=dates, months=st.integers(min_value=0, max_value=36))
    def test_calendar_months_clamped(self, join, months):
        end = probation_end_date(join, months)
        assert (end.year - join.year) * 12 + (end.month - join.month) == months
        last_day = calendar.monthrange(end.year, end.month)[1]
        assert end.day == min(join.day, last_day)
