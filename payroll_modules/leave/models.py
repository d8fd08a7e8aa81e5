"""
Leave Domain Models (``payroll_modules.leave.models``).

Frozen value objects for company leave types and per-employee leave
balances.  A ``LeaveBalance`` stores the capped accrual, the capped
carry-forward and the days used; ``available`` is always derived.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from payroll_config.schema import ConfigScope, LeaveTypeDef
from payroll_engines.leave_accrual import AccrualType, LeavePolicy

ZERO = Decimal("0")


@dataclass(frozen=True)
class FiscalYearWindow:
    """
    A fiscal year as supplied by the calendar collaborator.

    The label is an opaque partition key; it is never parsed.
    """
    label: str
    start: date
    end: date | None = None

    def __post_init__(self):
        if self.end is not None and self.end < self.start:
            raise ValueError("fiscal year end cannot precede its start")

    @classmethod
    def from_scope(cls, scope: ConfigScope) -> "FiscalYearWindow":
        return cls(scope.fiscal_year, scope.fiscal_year_start, scope.fiscal_year_end)

    def clamp(self, as_of: date) -> date:
        """``as_of`` limited to ``closing_date``, when the year end is known."""
        closing = self.closing_date
        if closing is not None and as_of > closing:
            return closing
        return as_of

    @property
    def closing_date(self) -> date | None:
        """Day after ``end``: the exclusive bound used to evaluate a full year."""
        return self.end + timedelta(days=1) if self.end is not None else None


@dataclass(frozen=True)
class LeaveTypeConfig:
    """
    A company's leave type.

    Construction validates the accrual settings through ``to_policy()``,
    so an inconsistent type raises ``InvalidLeaveTypeConfigurationError``.
    """
    company_id: UUID
    code: str
    name: str
    annual_entitlement: Decimal
    accrual_type: AccrualType
    max_accrual: Decimal | None = None
    max_carry_forward: Decimal = ZERO
    accrual_rate: Decimal | None = None
    accrual_per_days: int | None = None
    gender_restriction: str | None = None
    is_paid: bool = True
    requires_approval: bool = True
    is_active: bool = True
    display_order: int = 0
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        self.to_policy()

    def to_policy(self) -> LeavePolicy:
        return LeavePolicy(
            code=self.code,
            annual_entitlement=self.annual_entitlement,
            accrual_type=self.accrual_type,
            max_accrual=self.max_accrual,
            max_carry_forward=self.max_carry_forward,
            accrual_rate=self.accrual_rate,
            accrual_per_days=self.accrual_per_days,
            gender_restriction=self.gender_restriction,
            is_active=self.is_active,
        )

    @classmethod
    def from_definition(cls, company_id: UUID, definition: LeaveTypeDef) -> "LeaveTypeConfig":
        return cls(
            company_id=company_id,
            code=definition.code,
            name=definition.name,
            annual_entitlement=definition.annual_entitlement,
            accrual_type=AccrualType(definition.accrual_type),
            max_accrual=definition.max_accrual,
            max_carry_forward=definition.max_carry_forward,
            accrual_rate=definition.accrual_rate,
            accrual_per_days=definition.accrual_per_days,
            gender_restriction=definition.gender_restriction,
            is_paid=definition.is_paid,
            requires_approval=definition.requires_approval,
            display_order=definition.display_order,
        )


@dataclass(frozen=True)
class LeaveBalance:
    """Balance of one leave type for one employee and fiscal year."""
    employee_id: UUID
    leave_type_id: UUID
    leave_code: str
    fiscal_year: str
    accrued: Decimal
    carry_forward: Decimal
    used: Decimal
    as_of: date | None = None
    max_carry_forward: Decimal | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def usable_carry_forward(self) -> Decimal:
        """Stored carry-forward limited by the leave type's current cap."""
        if self.max_carry_forward is None:
            return self.carry_forward
        return min(self.carry_forward, self.max_carry_forward)

    @property
    def available(self) -> Decimal:
        return self.accrued + self.usable_carry_forward - self.used
