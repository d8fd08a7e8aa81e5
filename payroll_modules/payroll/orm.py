"""
Payroll ORM Persistence Models (``payroll_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``payroll_modules.payroll.models``.  Each ORM class mirrors a DTO and
    provides ``to_dto()`` / ``from_dto()`` round-trip conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - One payroll run per (company_id, fiscal_year, month).
    - One payslip per (payroll_run_id, employee_id); a run owns its payslips.
    - Tax brackets are shared reference data keyed by
      (fiscal_year, marital_status, min_amount).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import TrackedBase


def _value(enum_or_str):
    return enum_or_str.value if hasattr(enum_or_str, "value") else enum_or_str


# ---------------------------------------------------------------------------
# EmployeeModel
# ---------------------------------------------------------------------------

class EmployeeModel(TrackedBase):
    """
    ORM model for ``Employee``.

    Guarantees:
        - ``employee_code`` is unique within a company.
        - ``salary_type`` NULL means "derive from employment_type".
        - Leave balances are deleted with the employee (backref declared
          by ``payroll_modules.leave.orm.LeaveBalanceModel``).
    """

    __tablename__ = "payroll_employees"

    company_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    employment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    salary_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    estimated_units_per_month: Mapped[int | None] = mapped_column(nullable=True)
    dearness_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    marital_status: Mapped[str] = mapped_column(String(50), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ssf_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_join: Mapped[date | None] = mapped_column(Date, nullable=True)
    probation_months: Mapped[int | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "employee_code", name="uq_payroll_employee_code"),
        Index("idx_payroll_employee_company_active", "company_id", "is_active"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import Employee, Gender, MaritalStatus
        from payroll_engines.salary import EmploymentType, SalaryType

        return Employee(
            id=self.id,
            company_id=self.company_id,
            employee_code=self.employee_code,
            full_name=self.full_name,
            employment_type=EmploymentType(self.employment_type),
            salary_type=SalaryType(self.salary_type) if self.salary_type else None,
            basic_salary=self.basic_salary,
            rate=self.rate,
            estimated_units_per_month=self.estimated_units_per_month,
            dearness_allowance=self.dearness_allowance,
            marital_status=MaritalStatus(self.marital_status),
            gender=Gender(self.gender) if self.gender else None,
            ssf_number=self.ssf_number,
            date_of_join=self.date_of_join,
            probation_months=self.probation_months,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "EmployeeModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            employee_code=dto.employee_code,
            full_name=dto.full_name,
            employment_type=_value(dto.employment_type),
            salary_type=_value(dto.salary_type) if dto.salary_type else None,
            basic_salary=dto.basic_salary,
            rate=dto.rate,
            estimated_units_per_month=dto.estimated_units_per_month,
            dearness_allowance=dto.dearness_allowance,
            marital_status=_value(dto.marital_status),
            gender=_value(dto.gender) if dto.gender else None,
            ssf_number=dto.ssf_number,
            date_of_join=dto.date_of_join,
            probation_months=dto.probation_months,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.employee_code}: {self.full_name}>"


# ---------------------------------------------------------------------------
# TaxBracketModel
# ---------------------------------------------------------------------------

class TaxBracketModel(TrackedBase):
    """ORM model for ``TaxBracketRecord`` -- read-only reference data."""

    __tablename__ = "payroll_tax_brackets"

    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    marital_status: Mapped[str] = mapped_column(String(50), nullable=False)
    min_amount: Mapped[Decimal] = mapped_column(nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    rate: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "fiscal_year", "marital_status", "min_amount",
            name="uq_payroll_tax_bracket",
        ),
        Index("idx_payroll_tax_bracket_scope", "fiscal_year", "marital_status"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import MaritalStatus, TaxBracketRecord

        return TaxBracketRecord(
            id=self.id,
            fiscal_year=self.fiscal_year,
            marital_status=MaritalStatus(self.marital_status),
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            rate=self.rate,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "TaxBracketModel":
        return cls(
            id=dto.id,
            fiscal_year=dto.fiscal_year,
            marital_status=_value(dto.marital_status),
            min_amount=dto.min_amount,
            max_amount=dto.max_amount,
            rate=dto.rate,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<TaxBracketModel {self.fiscal_year}/{self.marital_status} "
            f"{self.min_amount}-{self.max_amount} @ {self.rate}>"
        )


# ---------------------------------------------------------------------------
# PayrollRunModel
# ---------------------------------------------------------------------------

class PayrollRunModel(TrackedBase):
    """
    ORM model for ``PayrollRun``.

    Guarantees:
        - (company_id, fiscal_year, month) is unique (uq_payroll_run_period).
        - ``status`` stores the ``PayrollRunStatus`` .value string.
        - Payslips are deleted with the run (only ever empty while draft).
    """

    __tablename__ = "payroll_runs"

    company_id: Mapped[UUID] = mapped_column(nullable=False)
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    month: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)

    payslips: Mapped[list["PayslipModel"]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id", "fiscal_year", "month", name="uq_payroll_run_period",
        ),
        Index("idx_payroll_run_status", "status"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import PayrollRun, PayrollRunStatus

        return PayrollRun(
            id=self.id,
            company_id=self.company_id,
            fiscal_year=self.fiscal_year,
            month=self.month,
            status=PayrollRunStatus(self.status),
            processed_at=self.processed_at,
            finalized_at=self.finalized_at,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PayrollRunModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            fiscal_year=dto.fiscal_year,
            month=dto.month,
            status=_value(dto.status),
            processed_at=dto.processed_at,
            finalized_at=dto.finalized_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollRunModel {self.fiscal_year}-{self.month:02d} "
            f"[{self.status}]>"
        )


# ---------------------------------------------------------------------------
# PayslipModel
# ---------------------------------------------------------------------------

class PayslipModel(TrackedBase):
    """
    ORM model for ``Payslip`` -- immutable once inserted.

    Guarantees:
        - (payroll_run_id, employee_id) is unique (uq_payroll_payslip_employee).
        - Every monetary component is stored; nothing is re-derived on read.
    """

    __tablename__ = "payroll_payslips"

    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_runs.id", ondelete="CASCADE"), nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_employees.id"), nullable=False,
    )
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False)
    dearness_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False)
    festival_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    other_allowances: Mapped[Decimal] = mapped_column(nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)
    ssf_employee_contribution: Mapped[Decimal] = mapped_column(nullable=False)
    ssf_employer_contribution: Mapped[Decimal] = mapped_column(nullable=False)
    income_tax: Mapped[Decimal] = mapped_column(nullable=False)
    social_security_tax: Mapped[Decimal] = mapped_column(nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)
    working_days: Mapped[int] = mapped_column(nullable=False)
    present_days: Mapped[int] = mapped_column(nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(nullable=False)

    payroll_run: Mapped["PayrollRunModel"] = relationship(back_populates="payslips")

    __table_args__ = (
        UniqueConstraint(
            "payroll_run_id", "employee_id", name="uq_payroll_payslip_employee",
        ),
        Index("idx_payroll_payslip_employee", "employee_id"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import Payslip

        return Payslip(
            id=self.id,
            payroll_run_id=self.payroll_run_id,
            employee_id=self.employee_id,
            basic_salary=self.basic_salary,
            dearness_allowance=self.dearness_allowance,
            overtime_hours=self.overtime_hours,
            overtime_amount=self.overtime_amount,
            festival_allowance=self.festival_allowance,
            other_allowances=self.other_allowances,
            gross_salary=self.gross_salary,
            ssf_employee_contribution=self.ssf_employee_contribution,
            ssf_employer_contribution=self.ssf_employer_contribution,
            income_tax=self.income_tax,
            social_security_tax=self.social_security_tax,
            other_deductions=self.other_deductions,
            total_deductions=self.total_deductions,
            net_salary=self.net_salary,
            working_days=self.working_days,
            present_days=self.present_days,
            leave_days=self.leave_days,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PayslipModel":
        return cls(
            id=dto.id,
            payroll_run_id=dto.payroll_run_id,
            employee_id=dto.employee_id,
            basic_salary=dto.basic_salary,
            dearness_allowance=dto.dearness_allowance,
            overtime_hours=dto.overtime_hours,
            overtime_amount=dto.overtime_amount,
            festival_allowance=dto.festival_allowance,
            other_allowances=dto.other_allowances,
            gross_salary=dto.gross_salary,
            ssf_employee_contribution=dto.ssf_employee_contribution,
            ssf_employer_contribution=dto.ssf_employer_contribution,
            income_tax=dto.income_tax,
            social_security_tax=dto.social_security_tax,
            other_deductions=dto.other_deductions,
            total_deductions=dto.total_deductions,
            net_salary=dto.net_salary,
            working_days=dto.working_days,
            present_days=dto.present_days,
            leave_days=dto.leave_days,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PayslipModel run={self.payroll_run_id} employee={self.employee_id}>"
