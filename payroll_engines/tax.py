"""
Progressive Tax Engine - Annual income tax from a bracket table.

Pure functions with no I/O - brackets are provided as parameters, already
scoped to one fiscal year and marital status.

The lowest-rate bracket whose rate equals the statutory social contribution
rate (1%) is waived for contribution-fund members: it still appears in the
breakdown with a zero tax amount.

Usage:
    from decimal import Decimal
    from payroll_engines.tax import ProgressiveTaxCalculator, TaxBracket

    brackets = [
        TaxBracket(Decimal("0"), Decimal("25000"), Decimal("0.01")),
        TaxBracket(Decimal("25001"), None, Decimal("0.10")),
    ]
    result = ProgressiveTaxCalculator().calculate(
        annual_income=Decimal("600000"),
        brackets=brackets,
        fiscal_year="2082/83",
        marital_status="single",
        has_contribution_fund=False,
    )
    print(result.annual_tax)     # 57750.00
    print(result.monthly_tax())  # 4812.50
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_kernel.db.types import round_money
from payroll_kernel.exceptions import (
    InvalidTaxBracketsError,
    NoTaxBracketsForFiscalYearError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.tax")

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True)
class TaxBracket:
    """
    One slab of a progressive table.

    ``max_amount=None`` marks the unbounded top bracket.
    """

    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal  # As fraction (e.g., 0.10 for 10%)

    def __post_init__(self) -> None:
        if self.min_amount < 0:
            raise ValueError("Bracket min_amount cannot be negative")
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError("Bracket max_amount cannot be below min_amount")
        if not ZERO <= self.rate <= ONE:
            raise ValueError("Bracket rate must be between 0 and 1")

    @property
    def is_unbounded(self) -> bool:
        return self.max_amount is None

    @property
    def rate_percent(self) -> Decimal:
        return self.rate * Decimal("100")


@dataclass(frozen=True)
class TaxBreakdownLine:
    """Tax attributed to one bracket."""

    bracket: TaxBracket
    taxable_amount: Decimal
    tax_amount: Decimal
    is_social_contribution: bool = False
    is_waived: bool = False


@dataclass(frozen=True)
class TaxCalculationResult:
    """Annual tax with per-bracket breakdown."""

    annual_income: Decimal
    annual_tax: Decimal
    breakdown: tuple[TaxBreakdownLine, ...]
    fiscal_year: str
    marital_status: str
    has_contribution_fund: bool

    @property
    def social_contribution_tax(self) -> Decimal:
        """Annual tax raised by the social contribution bracket(s)."""
        return sum(
            (line.tax_amount for line in self.breakdown if line.is_social_contribution),
            ZERO,
        )

    @property
    def effective_rate(self) -> Decimal:
        if self.annual_income <= 0:
            return ZERO
        return self.annual_tax / self.annual_income

    def monthly_tax(self, months_per_year: int = 12, decimal_places: int = 2) -> Decimal:
        """Annual tax spread evenly over the year."""
        return round_money(self.annual_tax / months_per_year, decimal_places)

    def monthly_social_contribution_tax(
        self, months_per_year: int = 12, decimal_places: int = 2,
    ) -> Decimal:
        return round_money(self.social_contribution_tax / months_per_year, decimal_places)


class ProgressiveTaxCalculator:
    """
    Walks a bracket table in ascending order and sums tax per slab.

    Slabs are authored with integer labels (``0-500000``, ``500001-700000``),
    so each slab after the first starts at the previous slab's
    ``max_amount``; that keeps the table contiguous without a one-unit gap.
    """

    def __init__(self, config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG):
        self._config = config

    def calculate(
        self,
        annual_income: Decimal,
        brackets: Sequence[TaxBracket],
        fiscal_year: str,
        marital_status: str,
        has_contribution_fund: bool,
    ) -> TaxCalculationResult:
        """
        Calculate annual income tax.

        Raises:
            NoTaxBracketsForFiscalYearError: ``brackets`` is empty.
            InvalidTaxBracketsError: brackets overlap, leave a gap, or an
                unbounded bracket is not last.
        """
        t0 = time.monotonic()
        if not brackets:
            raise NoTaxBracketsForFiscalYearError(fiscal_year, marital_status)

        ordered = sorted(brackets, key=lambda b: b.min_amount)
        self._validate(ordered, fiscal_year, marital_status)

        places = self._config.money_decimal_places
        income = max(annual_income, ZERO)
        lines: list[TaxBreakdownLine] = []
        total = ZERO
        lower = ordered[0].min_amount

        for bracket in ordered:
            upper = income if bracket.is_unbounded else min(income, bracket.max_amount)
            taxable = max(upper - lower, ZERO)
            is_social = bracket.rate == self._config.social_contribution_rate
            waived = is_social and has_contribution_fund
            tax_amount = ZERO if waived else round_money(taxable * bracket.rate, places)
            total += tax_amount
            lines.append(
                TaxBreakdownLine(
                    bracket=bracket,
                    taxable_amount=taxable,
                    tax_amount=tax_amount,
                    is_social_contribution=is_social,
                    is_waived=waived,
                )
            )
            if bracket.max_amount is not None:
                lower = bracket.max_amount

        result = TaxCalculationResult(
            annual_income=income,
            annual_tax=round_money(total, places),
            breakdown=tuple(lines),
            fiscal_year=fiscal_year,
            marital_status=marital_status,
            has_contribution_fund=has_contribution_fund,
        )
        logger.debug(
            "income_tax_calculated",
            extra={
                "fiscal_year": fiscal_year,
                "marital_status": marital_status,
                "has_contribution_fund": has_contribution_fund,
                "annual_income": str(income),
                "annual_tax": str(result.annual_tax),
                "bracket_count": len(lines),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return result

    @staticmethod
    def _validate(
        ordered: Sequence[TaxBracket], fiscal_year: str, marital_status: str,
    ) -> None:
        for prev, current in zip(ordered, ordered[1:]):
            if prev.max_amount is None:
                raise InvalidTaxBracketsError(
                    fiscal_year, marital_status,
                    "unbounded bracket must be the last one",
                )
            if current.min_amount < prev.max_amount:
                raise InvalidTaxBracketsError(
                    fiscal_year, marital_status,
                    f"bracket starting at {current.min_amount} overlaps "
                    f"bracket ending at {prev.max_amount}",
                )
            if current.min_amount - prev.max_amount > ONE:
                raise InvalidTaxBracketsError(
                    fiscal_year, marital_status,
                    f"gap between {prev.max_amount} and {current.min_amount}",
                )


def calculate_income_tax(
    annual_income: Decimal,
    brackets: Sequence[TaxBracket],
    fiscal_year: str,
    marital_status: str,
    has_contribution_fund: bool,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> TaxCalculationResult:
    """Convenience wrapper around ``ProgressiveTaxCalculator.calculate``."""
    return ProgressiveTaxCalculator(config).calculate(
        annual_income=annual_income,
        brackets=brackets,
        fiscal_year=fiscal_year,
        marital_status=marital_status,
        has_contribution_fund=has_contribution_fund,
    )
