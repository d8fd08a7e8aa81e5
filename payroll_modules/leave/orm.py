"""
Leave ORM Persistence Models (``payroll_modules.leave.orm``).

Responsibility:
    SQLAlchemy ORM models persisting ``LeaveTypeConfig`` and
    ``LeaveBalance``, with ``to_dto()`` / ``from_dto()`` conversion.

Invariants enforced:
    - Leave type codes are unique within a company (uq_leave_type_code).
    - One balance per (employee_id, leave_type_id, fiscal_year)
      (uq_leave_balance_period).
    - Balances are owned by the employee: deleted with it.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, backref, mapped_column, relationship

from payroll_kernel.db.base import TrackedBase
from payroll_modules.payroll.orm import EmployeeModel


class LeaveTypeModel(TrackedBase):
    """ORM model for ``LeaveTypeConfig``."""

    __tablename__ = "leave_types"

    company_id: Mapped[UUID] = mapped_column(nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    annual_entitlement: Mapped[Decimal] = mapped_column(nullable=False)
    accrual_type: Mapped[str] = mapped_column(String(50), nullable=False)
    max_accrual: Mapped[Decimal | None] = mapped_column(nullable=True)
    max_carry_forward: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    accrual_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    accrual_per_days: Mapped[int | None] = mapped_column(nullable=True)
    gender_restriction: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_leave_type_code"),
        Index("idx_leave_type_company_active", "company_id", "is_active"),
    )

    def to_dto(self):
        from payroll_engines.leave_accrual import AccrualType
        from payroll_kernel.exceptions import UnsupportedAccrualTypeError
        from payroll_modules.leave.models import LeaveTypeConfig

        try:
            accrual_type = AccrualType(self.accrual_type)
        except ValueError:
            raise UnsupportedAccrualTypeError(self.accrual_type, self.code) from None
        return LeaveTypeConfig(
            id=self.id,
            company_id=self.company_id,
            code=self.code,
            name=self.name,
            annual_entitlement=self.annual_entitlement,
            accrual_type=accrual_type,
            max_accrual=self.max_accrual,
            max_carry_forward=self.max_carry_forward,
            accrual_rate=self.accrual_rate,
            accrual_per_days=self.accrual_per_days,
            gender_restriction=self.gender_restriction,
            is_paid=self.is_paid,
            requires_approval=self.requires_approval,
            is_active=self.is_active,
            display_order=self.display_order,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "LeaveTypeModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            code=dto.code,
            name=dto.name,
            annual_entitlement=dto.annual_entitlement,
            accrual_type=dto.accrual_type.value if hasattr(dto.accrual_type, "value") else dto.accrual_type,
            max_accrual=dto.max_accrual,
            max_carry_forward=dto.max_carry_forward,
            accrual_rate=dto.accrual_rate,
            accrual_per_days=dto.accrual_per_days,
            gender_restriction=dto.gender_restriction,
            is_paid=dto.is_paid,
            requires_approval=dto.requires_approval,
            is_active=dto.is_active,
            display_order=dto.display_order,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<LeaveTypeModel {self.code} ({self.accrual_type})>"


class LeaveBalanceModel(TrackedBase):
    """ORM model for ``LeaveBalance``."""

    __tablename__ = "leave_balances"

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_employees.id", ondelete="CASCADE"), nullable=False,
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_types.id"), nullable=False,
    )
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)
    accrued: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    carry_forward: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    used: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    as_of_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    employee: Mapped[EmployeeModel] = relationship(
        backref=backref(
            "leave_balances",
            cascade="all, delete-orphan",
        ),
    )
    leave_type: Mapped[LeaveTypeModel] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "leave_type_id", "fiscal_year",
            name="uq_leave_balance_period",
        ),
        Index("idx_leave_balance_employee_year", "employee_id", "fiscal_year"),
    )

    def to_dto(self):
        from payroll_modules.leave.models import LeaveBalance

        return LeaveBalance(
            id=self.id,
            employee_id=self.employee_id,
            leave_type_id=self.leave_type_id,
            leave_code=self.leave_type.code,
            fiscal_year=self.fiscal_year,
            accrued=self.accrued,
            carry_forward=self.carry_forward,
            used=self.used,
            as_of=self.as_of_date,
            max_carry_forward=self.leave_type.max_carry_forward,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "LeaveBalanceModel":
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            leave_type_id=dto.leave_type_id,
            fiscal_year=dto.fiscal_year,
            accrued=dto.accrued,
            carry_forward=dto.carry_forward,
            used=dto.used,
            as_of_date=dto.as_of,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<LeaveBalanceModel employee={self.employee_id} "
            f"type={self.leave_type_id} {self.fiscal_year}>"
        )
