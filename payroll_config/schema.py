"""
Jurisdiction configuration schema.

Defines the human-authored, reviewable configuration for one payroll
jurisdiction and fiscal year.  YAML fragments are parsed into these types
by the loader; engines receive ``StatutoryConfig`` explicitly on every call.

Key distinction:
  StatutoryConfig     = constants of the labour/tax law (rates, day counts)
  JurisdictionConfig  = StatutoryConfig + tax tables + default leave types
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

# Python weekday numbers (Monday == 0)
SATURDAY = 5


@dataclass(frozen=True)
class StatutoryConfig:
    """
    Statutory constants used by every payroll and leave calculation.

    Field defaults are Nepal's Labour Act 2074 / Social Security Act values.
    Override at instantiation for another jurisdiction or a company policy:

        config = StatutoryConfig(overtime_multiplier=Decimal("2.0"))
    """

    working_days_per_month: int = 26
    working_hours_per_day: int = 8
    overtime_multiplier: Decimal = Decimal("1.5")

    employee_contribution_rate: Decimal = Decimal("0.11")
    employer_contribution_rate: Decimal = Decimal("0.20")
    social_contribution_rate: Decimal = Decimal("0.01")

    default_probation_months: int = 6
    months_per_year: int = 12
    weekly_off_days: tuple[int, ...] = (SATURDAY,)
    money_decimal_places: int = 2

    def __post_init__(self):
        if self.working_days_per_month <= 0:
            raise ValueError("working_days_per_month must be positive")
        if self.working_hours_per_day <= 0:
            raise ValueError("working_hours_per_day must be positive")
        if self.overtime_multiplier <= 0:
            raise ValueError("overtime_multiplier must be positive")
        if self.months_per_year <= 0:
            raise ValueError("months_per_year must be positive")
        if self.default_probation_months < 0:
            raise ValueError("default_probation_months cannot be negative")
        for name in (
            "employee_contribution_rate",
            "employer_contribution_rate",
            "social_contribution_rate",
        ):
            rate = getattr(self, name)
            if not Decimal("0") <= rate <= Decimal("1"):
                raise ValueError(f"{name} must be between 0 and 1, got {rate}")
        for day in self.weekly_off_days:
            if not 0 <= day <= 6:
                raise ValueError(f"weekly_off_days entries must be 0-6, got {day}")

    @property
    def working_hours_per_month(self) -> int:
        """Standard monthly hours (26 days x 8 hours = 208)."""
        return self.working_days_per_month * self.working_hours_per_day

    @property
    def total_contribution_rate(self) -> Decimal:
        return self.employee_contribution_rate + self.employer_contribution_rate


DEFAULT_STATUTORY_CONFIG = StatutoryConfig()


@dataclass(frozen=True)
class TaxBracketDef:
    """One slab of a progressive tax table (``max_amount=None`` is unbounded)."""

    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal


@dataclass(frozen=True)
class LeaveTypeDef:
    """A default leave type seeded into new companies."""

    code: str
    name: str
    annual_entitlement: Decimal
    accrual_type: str
    max_accrual: Decimal | None = None
    max_carry_forward: Decimal = Decimal("0")
    accrual_rate: Decimal | None = None
    accrual_per_days: int | None = None
    gender_restriction: str | None = None
    is_paid: bool = True
    requires_approval: bool = True
    display_order: int = 0


@dataclass(frozen=True)
class ConfigScope:
    """Scope of applicability for a jurisdiction configuration."""

    jurisdiction: str
    currency: str
    fiscal_year: str
    fiscal_year_start: date
    fiscal_year_end: date | None = None


@dataclass(frozen=True)
class JurisdictionConfig:
    """Complete configuration for one jurisdiction and fiscal year."""

    name: str
    version: int
    scope: ConfigScope
    statutory: StatutoryConfig = DEFAULT_STATUTORY_CONFIG
    # (fiscal_year, marital_status) -> ordered brackets
    tax_tables: dict[tuple[str, str], tuple[TaxBracketDef, ...]] = field(
        default_factory=dict
    )
    leave_types: tuple[LeaveTypeDef, ...] = ()
    checksum: str = ""

    def brackets_for(
        self, fiscal_year: str, marital_status: str,
    ) -> tuple[TaxBracketDef, ...]:
        """Return brackets for a fiscal year and marital status, or ``()``."""
        return self.tax_tables.get((fiscal_year, marital_status), ())
