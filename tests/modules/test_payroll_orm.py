"""ORM round-trip tests for the payroll module.

Verifies that every payroll ORM model can be persisted and queried back
with correct field values, that unique constraints are enforced by the
database, and that the immutability listeners protect produced payroll.

Models under test (4):
    EmployeeModel, TaxBracketModel, PayrollRunModel, PayslipModel
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from payroll_engines.salary import EmploymentType, SalaryType
from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_modules.payroll.models import (
    Employee,
    Gender,
    MaritalStatus,
    PayrollRun,
    PayrollRunStatus,
)
from payroll_modules.payroll.orm import (
    EmployeeModel,
    PayrollRunModel,
    PayslipModel,
    TaxBracketModel,
)
from payroll_modules.payroll.reference_data import TaxTableInstaller
from payroll_modules.payroll.selectors import TaxBracketSelector
from payroll_modules.payroll.service import PayrollRunService

FY = "2082/83"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _processed_run(session, clock, company_id, actor_id, make_employee):
    make_employee("EMP-001")
    service = PayrollRunService(session, clock=clock)
    run = service.create_run(company_id, FY, 4, actor_id=actor_id)
    service.process_run(run.id, actor_id=actor_id)
    return service, run


# ---------------------------------------------------------------------------
# EmployeeModel
# ---------------------------------------------------------------------------

class TestEmployeeModelORM:

    def test_round_trip(self, session, company_id, actor_id):
        dto = Employee(
            company_id=company_id,
            employee_code="EMP-042",
            full_name="Ram Thapa",
            employment_type=EmploymentType.CASUAL,
            rate=Decimal("250"),
            dearness_allowance=Decimal("1500"),
            marital_status=MaritalStatus.MARRIED,
            gender=Gender.MALE,
            ssf_number="SSF-777",
            date_of_join=date(2025, 8, 1),
            probation_months=3,
        )
        session.add(EmployeeModel.from_dto(dto, created_by_id=actor_id))
        session.commit()
        session.expire_all()

        loaded = session.get(EmployeeModel, dto.id).to_dto()
        assert loaded.employee_code == "EMP-042"
        assert loaded.employment_type == EmploymentType.CASUAL
        assert loaded.salary_type is None
        assert loaded.effective_salary_type == SalaryType.HOURLY
        assert loaded.rate == Decimal("250")
        assert loaded.marital_status == MaritalStatus.MARRIED
        assert loaded.gender == Gender.MALE
        assert loaded.has_contribution_fund
        assert loaded.date_of_join == date(2025, 8, 1)

    def test_audit_columns_populated(self, session, actor_id, make_employee):
        employee = make_employee("EMP-001")
        model = session.get(EmployeeModel, employee.id)
        assert model.created_by_id == actor_id
        assert model.created_at is not None

    def test_code_unique_within_company(self, session, company_id, actor_id, make_employee):
        make_employee("EMP-001")
        duplicate = Employee(company_id=company_id, employee_code="EMP-001", full_name="Other")
        session.add(EmployeeModel.from_dto(duplicate, created_by_id=actor_id))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_same_code_in_other_company(self, session, actor_id, make_employee):
        make_employee("EMP-001")
        other = Employee(company_id=uuid4(), employee_code="EMP-001", full_name="Other")
        session.add(EmployeeModel.from_dto(other, created_by_id=actor_id))
        session.flush()


# ---------------------------------------------------------------------------
# TaxBracketModel
# ---------------------------------------------------------------------------

class TestTaxBracketModelORM:

    def test_install_writes_all_tables(self, session, jurisdiction, actor_id):
        written = TaxTableInstaller(session).install(jurisdiction, actor_id=actor_id)
        session.commit()
        assert written == 10
        tables = TaxBracketSelector(session).tables_for(FY)
        assert set(tables) == {"single", "married"}
        assert tables["single"][-1].max_amount is None

    def test_install_is_idempotent(self, session, jurisdiction, actor_id):
        installer = TaxTableInstaller(session)
        installer.install(jurisdiction, actor_id=actor_id)
        assert installer.install(jurisdiction, actor_id=actor_id) == 0
        assert len(TaxBracketSelector(session).brackets_for(FY, "single")) == 5

    def test_replace(self, session, jurisdiction, actor_id):
        installer = TaxTableInstaller(session)
        installer.install(jurisdiction, actor_id=actor_id)
        assert installer.install(jurisdiction, actor_id=actor_id, replace=True) == 10
        assert len(TaxBracketSelector(session).brackets_for(FY, "married")) == 5

    def test_brackets_ordered(self, session, installed_tax_tables):
        brackets = TaxBracketSelector(session).brackets_for(FY, "married")
        assert [b.min_amount for b in brackets] == [
            Decimal("0"), Decimal("600001"), Decimal("800001"),
            Decimal("1100001"), Decimal("2000001"),
        ]

    def test_duplicate_slab_rejected(self, session, installed_tax_tables, actor_id):
        session.add(TaxBracketModel(
            fiscal_year=FY, marital_status="single", min_amount=Decimal("0"),
            max_amount=Decimal("1"), rate=Decimal("0.5"), created_by_id=actor_id,
        ))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()


# ---------------------------------------------------------------------------
# PayrollRunModel / PayslipModel
# ---------------------------------------------------------------------------

class TestPayrollRunModelORM:

    def test_round_trip(self, session, company_id, actor_id):
        dto = PayrollRun(company_id=company_id, fiscal_year=FY, month=7)
        session.add(PayrollRunModel.from_dto(dto, created_by_id=actor_id))
        session.commit()
        session.expire_all()

        loaded = session.get(PayrollRunModel, dto.id).to_dto()
        assert loaded == dto
        assert loaded.status == PayrollRunStatus.DRAFT

    def test_period_unique(self, session, company_id, actor_id):
        for _ in range(2):
            session.add(PayrollRunModel.from_dto(
                PayrollRun(company_id=company_id, fiscal_year=FY, month=7),
                created_by_id=actor_id,
            ))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_one_payslip_per_employee_per_run(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
    ):
        service, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        (payslip,) = service.get_payslips(run.id)

        from dataclasses import replace

        session.add(PayslipModel.from_dto(replace(payslip, id=uuid4()), created_by_id=actor_id))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_payslip_round_trip(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
    ):
        service, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        session.expire_all()
        model = session.scalars(
            select(PayslipModel).where(PayslipModel.payroll_run_id == run.id)
        ).one()
        payslip = model.to_dto()
        assert payslip.payroll_run_id == run.id
        assert payslip.net_salary == payslip.gross_salary - payslip.total_deductions
        assert model.payroll_run.id == run.id


class TestPayrollImmutability:

    def test_payslip_update_blocked(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
    ):
        _, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        model = session.scalars(
            select(PayslipModel).where(PayslipModel.payroll_run_id == run.id)
        ).one()

        model.net_salary = Decimal("999999")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        session.rollback()

        assert exc_info.value.entity_type == "Payslip"

    def test_payslip_delete_blocked(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
    ):
        _, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        model = session.scalars(
            select(PayslipModel).where(PayslipModel.payroll_run_id == run.id)
        ).one()

        session.delete(model)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_finalized_run_update_blocked(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
        captured_logs,
    ):
        service, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        service.finalize_run(run.id, actor_id=actor_id)

        model = session.get(PayrollRunModel, run.id)
        model.status = PayrollRunStatus.DRAFT.value
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        record = next(
            r for r in captured_logs() if r["message"] == "immutability_violation_blocked"
        )
        assert record["entity_type"] == "PayrollRun"
        assert record["field"] == "status"

    def test_processed_run_delete_blocked_at_orm_level(
        self, session, clock, company_id, actor_id, make_employee, installed_tax_tables,
    ):
        _, run = _processed_run(session, clock, company_id, actor_id, make_employee)
        session.delete(session.get(PayrollRunModel, run.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_draft_run_editable(self, session, company_id, actor_id):
        dto = PayrollRun(company_id=company_id, fiscal_year=FY, month=7)
        session.add(PayrollRunModel.from_dto(dto, created_by_id=actor_id))
        session.commit()

        model = session.get(PayrollRunModel, dto.id)
        model.month = 8
        session.commit()
        assert session.get(PayrollRunModel, dto.id).month == 8
