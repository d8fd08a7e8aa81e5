"""
Leave Accrual Engine - Days accrued, capped, carried forward and available.

Pure functions with no I/O.  A balance is re-derived from the leave policy,
the employee's join date, the fiscal-year start and the evaluation date
every time it is requested; nothing accumulates between calls, so
recomputing any number of times yields the same result.  ``used`` is an
input owned by the leave-approval workflow and is never changed here.

Accrual policies:
    annual            full entitlement once accrual has started
    monthly           entitlement / 12 per completed month
    per_working_days  floor(working days / accrual_per_days) x accrual_rate

Accrual starts at the later of the fiscal-year start and the join date.

Usage:
    from datetime import date
    from decimal import Decimal
    from payroll_engines.leave_accrual import AccrualType, LeaveAccrualEngine, LeavePolicy

    sick = LeavePolicy(
        code="sick",
        annual_entitlement=Decimal("12"),
        accrual_type=AccrualType.MONTHLY,
        max_accrual=Decimal("45"),
    )
    balance = LeaveAccrualEngine().compute_balance(
        sick,
        fiscal_year_start=date(2025, 7, 17),
        as_of=date(2026, 3, 17),
        date_of_join=date(2025, 10, 17),
    )
    print(balance.accrued)  # 5.00
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Callable, Sequence

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_engines.probation import add_months
from payroll_kernel.db.types import round_money
from payroll_kernel.exceptions import (
    InvalidLeaveTypeConfigurationError,
    UnsupportedAccrualTypeError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.leave_accrual")

ZERO = Decimal("0")


class AccrualType(str, Enum):
    """How a leave type's days become available over time."""

    ANNUAL = "annual"
    MONTHLY = "monthly"
    PER_WORKING_DAYS = "per_working_days"


@dataclass(frozen=True)
class LeavePolicy:
    """
    Accrual rules of one company leave type.

    ``max_accrual=None`` leaves accrual uncapped.  ``accrual_rate`` and
    ``accrual_per_days`` are required (and positive) only for
    ``per_working_days``.
    """

    code: str
    annual_entitlement: Decimal
    accrual_type: AccrualType
    max_accrual: Decimal | None = None
    max_carry_forward: Decimal = ZERO
    accrual_rate: Decimal | None = None
    accrual_per_days: int | None = None
    gender_restriction: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.annual_entitlement < 0:
            raise InvalidLeaveTypeConfigurationError(
                self.code, "annual_entitlement cannot be negative",
            )
        if self.max_accrual is not None and self.max_accrual < 0:
            raise InvalidLeaveTypeConfigurationError(
                self.code, "max_accrual cannot be negative",
            )
        if self.max_carry_forward < 0:
            raise InvalidLeaveTypeConfigurationError(
                self.code, "max_carry_forward cannot be negative",
            )
        if self.accrual_type == AccrualType.PER_WORKING_DAYS:
            if self.accrual_rate is None or self.accrual_rate <= 0:
                raise InvalidLeaveTypeConfigurationError(
                    self.code, "per_working_days requires a positive accrual_rate",
                )
            if self.accrual_per_days is None or self.accrual_per_days <= 0:
                raise InvalidLeaveTypeConfigurationError(
                    self.code, "per_working_days requires a positive accrual_per_days",
                )

    def applies_to(self, gender: str | None) -> bool:
        """Active and either unrestricted or restricted to ``gender``."""
        if not self.is_active:
            return False
        return self.gender_restriction is None or self.gender_restriction == gender


@dataclass(frozen=True)
class LeaveBalanceResult:
    """
    Derived balance of one leave type for one employee.

    ``available`` may go negative after over-use; ``accrued`` never does.
    """

    code: str
    accrual_start: date
    as_of: date
    computed: Decimal  # before the max_accrual cap
    accrued: Decimal
    carry_forward: Decimal  # after the max_carry_forward cap
    used: Decimal
    available: Decimal

    @property
    def is_capped(self) -> bool:
        return self.accrued < self.computed


@dataclass(frozen=True)
class EncashmentResult:
    """Days above a limit paid out at the daily rate."""

    encash_days: Decimal
    encash_amount: Decimal


# ---------------------------------------------------------------------------
# Elapsed-time helpers
# ---------------------------------------------------------------------------


def completed_months(start: date, end: date) -> int:
    """
    Whole calendar months from ``start`` to ``end`` (0 if ``end`` < ``start``).

    A month is complete once the same day of month (clamped) is reached.
    """
    if end < start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return max(months, 0)


def count_working_days(
    start: date,
    end: date,
    weekly_off_days: Sequence[int] = (5,),
) -> int:
    """
    Working days in the half-open range ``[start, end)``.

    Days whose ``weekday()`` is in ``weekly_off_days`` are excluded.
    """
    if end <= start:
        return 0
    total_days = (end - start).days
    full_weeks, remainder = divmod(total_days, 7)
    off = set(weekly_off_days)
    working = full_weeks * (7 - len(off))
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() not in off:
            working += 1
    return working


# ---------------------------------------------------------------------------
# Accrual handlers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _AccrualWindow:
    accrual_start: date
    as_of: date
    working_days_elapsed: int | None


def _accrue_annual(
    policy: LeavePolicy, window: _AccrualWindow, config: StatutoryConfig,
) -> Decimal:
    if window.accrual_start > window.as_of:
        return ZERO
    return policy.annual_entitlement


def _accrue_monthly(
    policy: LeavePolicy, window: _AccrualWindow, config: StatutoryConfig,
) -> Decimal:
    months = completed_months(window.accrual_start, window.as_of)
    return policy.annual_entitlement / config.months_per_year * months


def _accrue_per_working_days(
    policy: LeavePolicy, window: _AccrualWindow, config: StatutoryConfig,
) -> Decimal:
    working_days = window.working_days_elapsed
    if working_days is None:
        working_days = count_working_days(
            window.accrual_start, window.as_of, config.weekly_off_days,
        )
    blocks = Decimal(max(working_days, 0)) / Decimal(policy.accrual_per_days)
    return blocks.to_integral_value(rounding=ROUND_FLOOR) * policy.accrual_rate


_ACCRUAL_HANDLERS: dict[
    AccrualType, Callable[[LeavePolicy, _AccrualWindow, StatutoryConfig], Decimal]
] = {
    AccrualType.ANNUAL: _accrue_annual,
    AccrualType.MONTHLY: _accrue_monthly,
    AccrualType.PER_WORKING_DAYS: _accrue_per_working_days,
}


class LeaveAccrualEngine:
    """
    Derives leave balances from policy and elapsed time.

    Stateless: every method is a pure function of its arguments and the
    ``StatutoryConfig`` given at construction.
    """

    def __init__(self, config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG):
        self._config = config

    def accrued_days(
        self,
        policy: LeavePolicy,
        *,
        fiscal_year_start: date,
        as_of: date,
        date_of_join: date | None = None,
        working_days_elapsed: int | None = None,
    ) -> tuple[Decimal, Decimal]:
        """
        Return ``(computed, accrued)``: the raw accrual and the capped one.

        Raises:
            UnsupportedAccrualTypeError: no handler for ``policy.accrual_type``.
        """
        try:
            handler = _ACCRUAL_HANDLERS[AccrualType(policy.accrual_type)]
        except (ValueError, KeyError):
            raise UnsupportedAccrualTypeError(policy.accrual_type, policy.code) from None

        window = _AccrualWindow(
            accrual_start=self.accrual_start(fiscal_year_start, date_of_join),
            as_of=as_of,
            working_days_elapsed=working_days_elapsed,
        )
        computed = max(handler(policy, window, self._config), ZERO)
        accrued = computed
        if policy.max_accrual is not None:
            accrued = min(computed, policy.max_accrual)
        places = self._config.money_decimal_places
        return round_money(computed, places), round_money(accrued, places)

    @staticmethod
    def accrual_start(fiscal_year_start: date, date_of_join: date | None) -> date:
        """Later of the fiscal-year start and the join date."""
        if date_of_join is None:
            return fiscal_year_start
        return max(fiscal_year_start, date_of_join)

    def compute_balance(
        self,
        policy: LeavePolicy,
        *,
        fiscal_year_start: date,
        as_of: date,
        date_of_join: date | None = None,
        used: Decimal = ZERO,
        carry_forward: Decimal = ZERO,
        working_days_elapsed: int | None = None,
    ) -> LeaveBalanceResult:
        """
        Full balance for one leave type.

        ``available = accrued + min(carry_forward, max_carry_forward) - used``
        """
        computed, accrued = self.accrued_days(
            policy,
            fiscal_year_start=fiscal_year_start,
            as_of=as_of,
            date_of_join=date_of_join,
            working_days_elapsed=working_days_elapsed,
        )
        capped_carry = min(max(carry_forward, ZERO), policy.max_carry_forward)
        result = LeaveBalanceResult(
            code=policy.code,
            accrual_start=self.accrual_start(fiscal_year_start, date_of_join),
            as_of=as_of,
            computed=computed,
            accrued=accrued,
            carry_forward=capped_carry,
            used=used,
            available=accrued + capped_carry - used,
        )
        logger.debug(
            "leave_balance_computed",
            extra={
                "leave_code": policy.code,
                "accrual_type": AccrualType(policy.accrual_type).value,
                "accrued": str(result.accrued),
                "carry_forward": str(result.carry_forward),
                "used": str(result.used),
                "available": str(result.available),
            },
        )
        return result

    def compute_balances(
        self,
        policies: Sequence[LeavePolicy],
        *,
        gender: str | None,
        fiscal_year_start: date,
        as_of: date,
        date_of_join: date | None = None,
        used_by_code: dict[str, Decimal] | None = None,
        carry_forward_by_code: dict[str, Decimal] | None = None,
        working_days_elapsed: int | None = None,
    ) -> tuple[LeaveBalanceResult, ...]:
        """Balances for every active policy applicable to ``gender``."""
        used_by_code = used_by_code or {}
        carry_forward_by_code = carry_forward_by_code or {}
        return tuple(
            self.compute_balance(
                policy,
                fiscal_year_start=fiscal_year_start,
                as_of=as_of,
                date_of_join=date_of_join,
                used=used_by_code.get(policy.code, ZERO),
                carry_forward=carry_forward_by_code.get(policy.code, ZERO),
                working_days_elapsed=working_days_elapsed,
            )
            for policy in policies
            if policy.applies_to(gender)
        )


def carry_forward_to_next_year(balance: LeaveBalanceResult, max_carry_forward: Decimal) -> Decimal:
    """Unused days credited to the next fiscal year, capped per type."""
    return min(max(balance.available, ZERO), max_carry_forward)


def calculate_leave_encashment(
    current_balance: Decimal,
    max_limit: Decimal,
    daily_rate: Decimal,
    decimal_places: int = 2,
) -> EncashmentResult:
    """Days above ``max_limit`` paid out at ``daily_rate``."""
    if current_balance <= max_limit:
        return EncashmentResult(ZERO, round_money(ZERO, decimal_places))
    encash_days = current_balance - max_limit
    return EncashmentResult(
        encash_days=encash_days,
        encash_amount=round_money(encash_days * daily_rate, decimal_places),
    )
