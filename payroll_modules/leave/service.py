"""
Leave Balance Service (``payroll_modules.leave.service``).

Responsibility
--------------
Persists company leave types and per-employee leave balances, delegating
every number to ``LeaveAccrualEngine``:

    seed_default_leave_types   jurisdiction defaults -> company leave types
    compute_balances           read-only derivation (nothing written)
    recompute_balances         idempotent upsert of accrued days
    record_leave_taken         approval workflow hook: increments ``used``
    rollover_fiscal_year       carry unused days into the next year
    calculate_encashment       days above a limit x daily rate

Invariants enforced
-------------------
* Recompute re-derives ``accrued`` from policy and elapsed time; it never
  adds to the stored value and never touches ``used``.  Running it any
  number of times with the same inputs leaves the same rows.
* Only leave types that are active and match the employee's gender get
  balances.
* Mutating methods commit on success, roll back and re-raise on failure.

Failure modes
-------------
* ``EmployeeNotFoundError``               -- unknown employee.
* ``LeaveTypeNotFoundError``              -- unknown or inapplicable leave code.
* ``InvalidLeaveTypeConfigurationError``  -- leave type settings rejected.
* ``UnsupportedAccrualTypeError``         -- stored accrual type unknown.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, LeaveTypeDef, StatutoryConfig
from payroll_engines.leave_accrual import (
    EncashmentResult,
    LeaveAccrualEngine,
    LeaveBalanceResult,
    calculate_leave_encashment,
    carry_forward_to_next_year,
)
from payroll_engines.salary import daily_rate, normalize_monthly_salary
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.exceptions import EmployeeNotFoundError, LeaveTypeNotFoundError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.leave.models import FiscalYearWindow, LeaveBalance, LeaveTypeConfig
from payroll_modules.leave.orm import LeaveBalanceModel, LeaveTypeModel
from payroll_modules.payroll.models import Employee, Gender
from payroll_modules.payroll.orm import EmployeeModel

logger = get_logger("modules.leave.service")

ZERO = Decimal("0")


class LeaveBalanceService:
    """Leave types and balances for one session."""

    def __init__(
        self,
        session: Session,
        config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._engine = LeaveAccrualEngine(config)

    # -----------------------------------------------------------------
    # Leave types
    # -----------------------------------------------------------------

    def seed_default_leave_types(
        self,
        company_id: UUID,
        definitions: Sequence[LeaveTypeDef],
        actor_id: UUID,
    ) -> list[LeaveTypeConfig]:
        """
        Create the jurisdiction's default leave types for a company.

        Codes the company already has are left as they are.
        """
        try:
            existing = set(
                self._session.scalars(
                    select(LeaveTypeModel.code).where(
                        LeaveTypeModel.company_id == company_id,
                    )
                )
            )
            created = []
            for definition in definitions:
                if definition.code in existing:
                    continue
                leave_type = LeaveTypeConfig.from_definition(company_id, definition)
                self._session.add(LeaveTypeModel.from_dto(leave_type, created_by_id=actor_id))
                created.append(leave_type)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "leave_types_seeded",
            extra={
                "company_id": str(company_id),
                "created_count": len(created),
                "skipped_count": len(definitions) - len(created),
            },
        )
        return created

    def add_leave_type(self, leave_type: LeaveTypeConfig, actor_id: UUID) -> LeaveTypeConfig:
        try:
            self._session.add(LeaveTypeModel.from_dto(leave_type, created_by_id=actor_id))
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "leave_type_added",
            extra={"company_id": str(leave_type.company_id), "leave_code": leave_type.code},
        )
        return leave_type

    def list_leave_types(
        self, company_id: UUID, active_only: bool = True,
    ) -> list[LeaveTypeConfig]:
        return [model.to_dto() for model in self._leave_type_models(company_id, active_only)]

    def leave_types_for(self, employee: Employee) -> list[LeaveTypeConfig]:
        """Active leave types of the employee's company that apply to them."""
        gender = Gender(employee.gender).value if employee.gender is not None else None
        return [
            leave_type
            for leave_type in self.list_leave_types(employee.company_id)
            if leave_type.to_policy().applies_to(gender)
        ]

    # -----------------------------------------------------------------
    # Balances
    # -----------------------------------------------------------------

    def compute_balances(
        self,
        employee_id: UUID,
        fiscal_year: FiscalYearWindow,
        as_of: date | None = None,
        working_days_elapsed: int | None = None,
    ) -> list[LeaveBalanceResult]:
        """
        Derive balances without writing anything.

        ``used`` and ``carry_forward`` come from stored rows (zero if none).
        """
        employee = self._employee(employee_id)
        as_of = fiscal_year.clamp(as_of or self._clock.today())
        stored = {
            row.leave_type_id: row
            for row in self._balance_models(employee_id, fiscal_year.label)
        }
        results = []
        for model in self._applicable_type_models(employee):
            row = stored.get(model.id)
            results.append(
                self._engine.compute_balance(
                    model.to_dto().to_policy(),
                    fiscal_year_start=fiscal_year.start,
                    as_of=as_of,
                    date_of_join=employee.date_of_join,
                    used=row.used if row is not None else ZERO,
                    carry_forward=row.carry_forward if row is not None else ZERO,
                    working_days_elapsed=working_days_elapsed,
                )
            )
        return results

    def recompute_balances(
        self,
        employee_id: UUID,
        fiscal_year: FiscalYearWindow,
        actor_id: UUID,
        as_of: date | None = None,
        working_days_elapsed: int | None = None,
    ) -> list[LeaveBalance]:
        """
        Upsert one balance row per applicable leave type.

        Creates missing rows (prorated from the join date when the employee
        joined mid-year) and overwrites ``accrued`` on existing rows.
        """
        employee = self._employee(employee_id)
        as_of = fiscal_year.clamp(as_of or self._clock.today())
        with LogContext.bind(
            employee_id=employee_id, fiscal_year=fiscal_year.label, actor_id=actor_id,
        ):
            try:
                stored = {
                    row.leave_type_id: row
                    for row in self._balance_models(employee_id, fiscal_year.label)
                }
                balances = []
                for type_model in self._applicable_type_models(employee):
                    row = stored.get(type_model.id)
                    if row is None:
                        row = LeaveBalanceModel(
                            employee_id=employee_id,
                            leave_type_id=type_model.id,
                            leave_type=type_model,
                            fiscal_year=fiscal_year.label,
                            accrued=ZERO,
                            carry_forward=ZERO,
                            used=ZERO,
                            created_by_id=actor_id,
                        )
                        self._session.add(row)
                    policy = type_model.to_dto().to_policy()
                    _, accrued = self._engine.accrued_days(
                        policy,
                        fiscal_year_start=fiscal_year.start,
                        as_of=as_of,
                        date_of_join=employee.date_of_join,
                        working_days_elapsed=working_days_elapsed,
                    )
                    if row.accrued != accrued or row.as_of_date != as_of:
                        row.accrued = accrued
                        row.as_of_date = as_of
                        row.updated_by_id = actor_id
                    balances.append(row)
                self._session.flush()
                result = [row.to_dto() for row in balances]
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "leave_balances_recomputed",
                extra={"as_of": as_of.isoformat(), "balance_count": len(result)},
            )
            return result

    def record_leave_taken(
        self,
        employee_id: UUID,
        leave_code: str,
        fiscal_year: str,
        days: Decimal,
        actor_id: UUID,
    ) -> LeaveBalance:
        """
        Add approved leave days to ``used``.

        Called by the leave-request approval workflow; ``available`` may go
        negative.
        """
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")
        try:
            employee = self._employee(employee_id)
            type_model = self._leave_type_by_code(employee.company_id, leave_code)
            row = self._session.scalar(
                select(LeaveBalanceModel).where(
                    LeaveBalanceModel.employee_id == employee_id,
                    LeaveBalanceModel.leave_type_id == type_model.id,
                    LeaveBalanceModel.fiscal_year == fiscal_year,
                )
            )
            if row is None:
                row = LeaveBalanceModel(
                    employee_id=employee_id,
                    leave_type_id=type_model.id,
                    leave_type=type_model,
                    fiscal_year=fiscal_year,
                    accrued=ZERO,
                    carry_forward=ZERO,
                    used=ZERO,
                    created_by_id=actor_id,
                )
                self._session.add(row)
            row.used = row.used + days
            row.updated_by_id = actor_id
            self._session.flush()
            balance = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "leave_usage_recorded",
            extra={
                "employee_id": str(employee_id),
                "leave_code": leave_code,
                "days": str(days),
                "available": str(balance.available),
            },
        )
        return balance

    def rollover_fiscal_year(
        self,
        employee_id: UUID,
        closing_year: FiscalYearWindow,
        opening_year: FiscalYearWindow,
        actor_id: UUID,
    ) -> list[LeaveBalance]:
        """
        Open next year's balances with capped carry-forward.

        The closing year is evaluated through its last day (the day before
        the opening year starts); each type carries
        ``min(max(available, 0), max_carry_forward)`` days.  Re-running
        overwrites the opening rows' carry-forward with the same figure.
        """
        closing_as_of = closing_year.closing_date or opening_year.start
        closing = {
            result.code: result
            for result in self.compute_balances(
                employee_id, closing_year, as_of=closing_as_of,
            )
        }
        employee = self._employee(employee_id)
        with LogContext.bind(
            employee_id=employee_id, fiscal_year=opening_year.label, actor_id=actor_id,
        ):
            try:
                stored = {
                    row.leave_type_id: row
                    for row in self._balance_models(employee_id, opening_year.label)
                }
                opened = []
                for type_model in self._applicable_type_models(employee):
                    previous = closing.get(type_model.code)
                    carried = ZERO
                    if previous is not None:
                        carried = carry_forward_to_next_year(
                            previous, type_model.max_carry_forward,
                        )
                    _, accrued = self._engine.accrued_days(
                        type_model.to_dto().to_policy(),
                        fiscal_year_start=opening_year.start,
                        as_of=opening_year.start,
                        date_of_join=employee.date_of_join,
                    )
                    row = stored.get(type_model.id)
                    if row is None:
                        row = LeaveBalanceModel(
                            employee_id=employee_id,
                            leave_type_id=type_model.id,
                            leave_type=type_model,
                            fiscal_year=opening_year.label,
                            accrued=accrued,
                            carry_forward=carried,
                            used=ZERO,
                            as_of_date=opening_year.start,
                            created_by_id=actor_id,
                        )
                        self._session.add(row)
                    else:
                        row.carry_forward = carried
                        row.updated_by_id = actor_id
                    opened.append(row)
                self._session.flush()
                result = [row.to_dto() for row in opened]
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "leave_fiscal_year_rolled_over",
                extra={
                    "closing_fiscal_year": closing_year.label,
                    "balance_count": len(result),
                    "total_carried": str(sum((b.carry_forward for b in result), ZERO)),
                },
            )
            return result

    def calculate_encashment(
        self,
        employee_id: UUID,
        leave_code: str,
        fiscal_year: FiscalYearWindow,
        max_limit: Decimal,
        as_of: date | None = None,
    ) -> EncashmentResult:
        """Pay out available days above ``max_limit`` at the daily rate."""
        employee = self._employee(employee_id)
        balances = {
            result.code: result
            for result in self.compute_balances(employee_id, fiscal_year, as_of=as_of)
        }
        if leave_code not in balances:
            raise LeaveTypeNotFoundError(
                leave_code, str(employee.company_id), employee_id=str(employee_id),
            )
        monthly = normalize_monthly_salary(employee.salary_terms(), self._config)
        return calculate_leave_encashment(
            balances[leave_code].available,
            max_limit,
            daily_rate(monthly, self._config),
            self._config.money_decimal_places,
        )

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _employee(self, employee_id: UUID) -> Employee:
        model = self._session.get(EmployeeModel, employee_id)
        if model is None:
            raise EmployeeNotFoundError(str(employee_id))
        return model.to_dto()

    def _leave_type_models(self, company_id: UUID, active_only: bool) -> list[LeaveTypeModel]:
        stmt = select(LeaveTypeModel).where(LeaveTypeModel.company_id == company_id)
        if active_only:
            stmt = stmt.where(LeaveTypeModel.is_active.is_(True))
        stmt = stmt.order_by(LeaveTypeModel.display_order, LeaveTypeModel.code)
        return list(self._session.scalars(stmt))

    def _applicable_type_models(self, employee: Employee) -> list[LeaveTypeModel]:
        gender = Gender(employee.gender).value if employee.gender is not None else None
        return [
            model
            for model in self._leave_type_models(employee.company_id, active_only=True)
            if model.gender_restriction is None or model.gender_restriction == gender
        ]

    def _leave_type_by_code(self, company_id: UUID, code: str) -> LeaveTypeModel:
        model = self._session.scalar(
            select(LeaveTypeModel).where(
                LeaveTypeModel.company_id == company_id,
                LeaveTypeModel.code == code,
            )
        )
        if model is None:
            raise LeaveTypeNotFoundError(code, str(company_id))
        return model

    def _balance_models(self, employee_id: UUID, fiscal_year: str) -> list[LeaveBalanceModel]:
        return list(
            self._session.scalars(
                select(LeaveBalanceModel).where(
                    LeaveBalanceModel.employee_id == employee_id,
                    LeaveBalanceModel.fiscal_year == fiscal_year,
                )
            )
        )
