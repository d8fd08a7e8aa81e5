"""
Payroll read paths (``payroll_modules.payroll.selectors``).

Snapshots of employees and tax brackets consumed by a payroll run, plus
run and payslip lookups.  Every method returns frozen DTOs.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import date
from uuid import UUID

from sqlalchemy import select

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_engines.tax import TaxBracket
from payroll_kernel.selectors import BaseSelector
from payroll_modules.payroll.models import Employee, PayrollRun, Payslip
from payroll_modules.payroll.orm import (
    EmployeeModel,
    PayrollRunModel,
    PayslipModel,
    TaxBracketModel,
)


class EmployeeSelector(BaseSelector[EmployeeModel]):

    def active_for_company(self, company_id: UUID) -> list[Employee]:
        """Active employees of a company, ordered by employee code."""
        rows = self.session.scalars(
            select(EmployeeModel)
            .where(
                EmployeeModel.company_id == company_id,
                EmployeeModel.is_active.is_(True),
            )
            .order_by(EmployeeModel.employee_code)
        )
        return [row.to_dto() for row in rows]

    def get(self, employee_id: UUID) -> Employee | None:
        row = self.session.get(EmployeeModel, employee_id)
        return row.to_dto() if row is not None else None

    def on_probation(
        self,
        company_id: UUID,
        today: date,
        config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
    ) -> list[Employee]:
        """Active employees whose probation has not ended by ``today``."""
        return [
            employee
            for employee in self.active_for_company(company_id)
            if employee.is_on_probation(today, config)
        ]

    def stored_ids(self, employee_ids: Collection[UUID]) -> set[UUID]:
        """The subset of ``employee_ids`` that exist on record."""
        if not employee_ids:
            return set()
        return set(
            self.session.scalars(
                select(EmployeeModel.id).where(EmployeeModel.id.in_(list(employee_ids)))
            )
        )


class TaxBracketSelector(BaseSelector[TaxBracketModel]):

    def brackets_for(self, fiscal_year: str, marital_status: str) -> list[TaxBracket]:
        """Engine brackets for one (fiscal_year, marital_status), ascending."""
        rows = self.session.scalars(
            select(TaxBracketModel)
            .where(
                TaxBracketModel.fiscal_year == fiscal_year,
                TaxBracketModel.marital_status == marital_status,
            )
            .order_by(TaxBracketModel.min_amount)
        )
        return [
            TaxBracket(
                min_amount=row.min_amount,
                max_amount=row.max_amount,
                rate=row.rate,
            )
            for row in rows
        ]

    def tables_for(self, fiscal_year: str) -> dict[str, list[TaxBracket]]:
        """All bracket tables of a fiscal year keyed by marital status."""
        tables: dict[str, list[TaxBracket]] = {}
        rows = self.session.scalars(
            select(TaxBracketModel)
            .where(TaxBracketModel.fiscal_year == fiscal_year)
            .order_by(TaxBracketModel.marital_status, TaxBracketModel.min_amount)
        )
        for row in rows:
            tables.setdefault(row.marital_status, []).append(
                TaxBracket(row.min_amount, row.max_amount, row.rate)
            )
        return tables


class PayrollRunSelector(BaseSelector[PayrollRunModel]):

    def get(self, run_id: UUID) -> PayrollRun | None:
        row = self.session.get(PayrollRunModel, run_id)
        return row.to_dto() if row is not None else None

    def list_for_company(
        self, company_id: UUID, fiscal_year: str | None = None,
    ) -> list[PayrollRun]:
        """Runs of a company, newest fiscal year and month first."""
        stmt = select(PayrollRunModel).where(PayrollRunModel.company_id == company_id)
        if fiscal_year is not None:
            stmt = stmt.where(PayrollRunModel.fiscal_year == fiscal_year)
        stmt = stmt.order_by(
            PayrollRunModel.fiscal_year.desc(), PayrollRunModel.month.desc(),
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def payslips(self, run_id: UUID) -> list[Payslip]:
        rows = self.session.scalars(
            select(PayslipModel)
            .where(PayslipModel.payroll_run_id == run_id)
            .order_by(PayslipModel.created_at, PayslipModel.employee_id)
        )
        return [row.to_dto() for row in rows]
