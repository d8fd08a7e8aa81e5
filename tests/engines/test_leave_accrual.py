"""
Tests for the Leave Accrual Engine.

Covers:
- Annual, monthly and per-working-days accrual
- Join-date proration
- max_accrual cap and carry-forward cap
- Idempotence
- Gender filtering
- Rollover and encashment helpers
"""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from payroll_engines.leave_accrual import (
    AccrualType,
    LeaveAccrualEngine,
    LeavePolicy,
    calculate_leave_encashment,
    carry_forward_to_next_year,
    completed_months,
    count_working_days,
)
from payroll_kernel.exceptions import (
    InvalidLeaveTypeConfigurationError,
    UnsupportedAccrualTypeError,
)

FY_START = date(2025, 7, 17)

SICK = LeavePolicy(
    code="sick",
    annual_entitlement=Decimal("12"),
    accrual_type=AccrualType.MONTHLY,
    max_accrual=Decimal("45"),
    max_carry_forward=Decimal("45"),
)
HOME = LeavePolicy(
    code="home",
    annual_entitlement=Decimal("18"),
    accrual_type=AccrualType.PER_WORKING_DAYS,
    max_accrual=Decimal("90"),
    max_carry_forward=Decimal("90"),
    accrual_rate=Decimal("1"),
    accrual_per_days=20,
)
MOURNING = LeavePolicy(
    code="mourning",
    annual_entitlement=Decimal("13"),
    accrual_type=AccrualType.ANNUAL,
)
MATERNITY = LeavePolicy(
    code="maternity",
    annual_entitlement=Decimal("60"),
    accrual_type=AccrualType.ANNUAL,
    gender_restriction="female",
)


class TestMonthlyAccrual:

    def setup_method(self):
        self.engine = LeaveAccrualEngine()

    def test_join_three_months_in_evaluated_five_months_later(self):
        """12/12 x 5 = 5, not 8: the pre-join months are excluded."""
        joined = date(2025, 10, 17)
        balance = self.engine.compute_balance(
            replace(SICK, max_accrual=None),
            fiscal_year_start=FY_START,
            as_of=date(2026, 3, 17),
            date_of_join=joined,
        )
        assert balance.accrual_start == joined
        assert balance.accrued == Decimal("5.00")

    def test_partial_month_not_counted(self):
        balance = self.engine.compute_balance(
            SICK, fiscal_year_start=FY_START, as_of=date(2025, 9, 16),
        )
        assert balance.accrued == Decimal("1.00")

    def test_join_before_fiscal_year(self):
        balance = self.engine.compute_balance(
            SICK,
            fiscal_year_start=FY_START,
            as_of=date(2026, 7, 17),
            date_of_join=date(2020, 1, 1),
        )
        assert balance.accrued == Decimal("12.00")

    def test_evaluated_before_join(self):
        balance = self.engine.compute_balance(
            SICK,
            fiscal_year_start=FY_START,
            as_of=date(2025, 8, 1),
            date_of_join=date(2025, 12, 1),
        )
        assert balance.accrued == 0


class TestAnnualAccrual:

    def setup_method(self):
        self.engine = LeaveAccrualEngine()

    def test_full_entitlement_once_started(self):
        balance = self.engine.compute_balance(
            MOURNING, fiscal_year_start=FY_START, as_of=FY_START,
        )
        assert balance.accrued == Decimal("13.00")

    def test_zero_before_join(self):
        balance = self.engine.compute_balance(
            MOURNING,
            fiscal_year_start=FY_START,
            as_of=date(2025, 9, 1),
            date_of_join=date(2025, 10, 1),
        )
        assert balance.accrued == 0


class TestPerWorkingDaysAccrual:

    def setup_method(self):
        self.engine = LeaveAccrualEngine()

    def test_supplied_working_days(self):
        """floor(45 / 20) x 1 = 2."""
        balance = self.engine.compute_balance(
            HOME,
            fiscal_year_start=FY_START,
            as_of=date(2025, 9, 1),
            working_days_elapsed=45,
        )
        assert balance.accrued == Decimal("2.00")

    def test_counted_working_days_exclude_saturdays(self):
        # 2025-07-17 is a Thursday; 4 weeks = 28 days, 24 working days
        balance = self.engine.compute_balance(
            HOME, fiscal_year_start=FY_START, as_of=FY_START + timedelta(days=28),
        )
        assert balance.accrued == Decimal("1.00")

    def test_cap_applies(self):
        balance = self.engine.compute_balance(
            HOME,
            fiscal_year_start=FY_START,
            as_of=date(2026, 7, 1),
            working_days_elapsed=5000,
        )
        assert balance.computed == Decimal("250.00")
        assert balance.accrued == Decimal("90.00")
        assert balance.is_capped


class TestCapsAndAvailability:

    def setup_method(self):
        self.engine = LeaveAccrualEngine()

    @pytest.mark.parametrize("policy", [SICK, HOME, MOURNING])
    @pytest.mark.parametrize("days_elapsed", [0, 1, 29, 31, 200, 365, 4000])
    def test_accrued_bounded(self, policy, days_elapsed):
        capped = replace(policy, max_accrual=Decimal("10"))
        balance = self.engine.compute_balance(
            capped,
            fiscal_year_start=FY_START,
            as_of=FY_START + timedelta(days=days_elapsed),
        )
        assert Decimal("0") <= balance.accrued <= Decimal("10")

    def test_available_formula(self):
        balance = self.engine.compute_balance(
            SICK,
            fiscal_year_start=FY_START,
            as_of=date(2026, 1, 17),
            used=Decimal("2"),
            carry_forward=Decimal("50"),
        )
        # accrued 6 + min(50, 45) - 2
        assert balance.carry_forward == Decimal("45")
        assert balance.available == Decimal("49.00")

    def test_available_can_go_negative(self):
        balance = self.engine.compute_balance(
            MOURNING, fiscal_year_start=FY_START, as_of=FY_START, used=Decimal("20"),
        )
        assert balance.available == Decimal("-7.00")
        assert balance.accrued >= 0

    def test_idempotent(self):
        kwargs = dict(
            fiscal_year_start=FY_START,
            as_of=date(2026, 2, 3),
            date_of_join=date(2025, 8, 30),
            used=Decimal("1.5"),
            carry_forward=Decimal("3"),
        )
        first = self.engine.compute_balance(SICK, **kwargs)
        second = self.engine.compute_balance(SICK, **kwargs)
        assert first == second


class TestComputeBalances:

    def test_gender_and_active_filter(self):
        engine = LeaveAccrualEngine()
        inactive = replace(MOURNING, code="old", is_active=False)
        policies = [SICK, MOURNING, MATERNITY, inactive]

        male = engine.compute_balances(
            policies, gender="male", fiscal_year_start=FY_START, as_of=FY_START,
        )
        female = engine.compute_balances(
            policies, gender="female", fiscal_year_start=FY_START, as_of=FY_START,
            used_by_code={"maternity": Decimal("10")},
        )

        assert [b.code for b in male] == ["sick", "mourning"]
        assert [b.code for b in female] == ["sick", "mourning", "maternity"]
        assert female[-1].available == Decimal("50.00")


class TestPolicyValidation:

    def test_per_working_days_requires_rate(self):
        with pytest.raises(InvalidLeaveTypeConfigurationError):
            replace(HOME, accrual_rate=None)

    def test_per_working_days_requires_positive_days(self):
        with pytest.raises(InvalidLeaveTypeConfigurationError):
            replace(HOME, accrual_per_days=0)

    def test_rate_fields_optional_for_other_types(self):
        assert SICK.accrual_rate is None

    def test_unsupported_accrual_type(self):
        policy = LeavePolicy(
            code="weird",
            annual_entitlement=Decimal("5"),
            accrual_type="quarterly",
        )
        with pytest.raises(UnsupportedAccrualTypeError) as exc_info:
            LeaveAccrualEngine().compute_balance(
                policy, fiscal_year_start=FY_START, as_of=FY_START,
            )
        assert exc_info.value.leave_code == "weird"


class TestHelpers:

    def test_completed_months(self):
        assert completed_months(date(2025, 7, 17), date(2025, 8, 16)) == 0
        assert completed_months(date(2025, 7, 17), date(2025, 8, 17)) == 1
        assert completed_months(date(2025, 1, 31), date(2025, 2, 28)) == 1
        assert completed_months(date(2025, 8, 1), date(2025, 7, 1)) == 0

    def test_count_working_days(self):
        # Mon 2025-07-14 .. Mon 2025-07-21 (exclusive): Saturday 19th is off
        assert count_working_days(date(2025, 7, 14), date(2025, 7, 21)) == 6
        assert count_working_days(date(2025, 7, 14), date(2025, 7, 14)) == 0

    def test_carry_forward_capped(self):
        balance = LeaveAccrualEngine().compute_balance(
            SICK, fiscal_year_start=FY_START, as_of=date(2026, 7, 17),
        )
        assert carry_forward_to_next_year(balance, Decimal("5")) == Decimal("5")
        assert carry_forward_to_next_year(balance, Decimal("45")) == Decimal("12.00")

    def test_negative_balance_carries_nothing(self):
        balance = LeaveAccrualEngine().compute_balance(
            MOURNING, fiscal_year_start=FY_START, as_of=FY_START, used=Decimal("20"),
        )
        assert carry_forward_to_next_year(balance, Decimal("10")) == 0

    def test_encashment(self):
        result = calculate_leave_encashment(
            Decimal("100"), Decimal("90"), Decimal("2000"),
        )
        assert result.encash_days == Decimal("10")
        assert result.encash_amount == Decimal("20000.00")

    def test_no_encashment_within_limit(self):
        result = calculate_leave_encashment(
            Decimal("50"), Decimal("90"), Decimal("2000"),
        )
        assert result.encash_days == 0
        assert result.encash_amount == 0
