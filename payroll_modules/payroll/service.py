"""
Payroll Run Service (``payroll_modules.payroll.service``).

Responsibility
--------------
Drives the payroll run lifecycle for one company and fiscal month:

    create_run    -> draft
    process_run   draft -> processed   (one payslip per active employee)
    finalize_run  processed -> finalized
    delete_run    draft -> (removed)

Pure computation is delegated to ``PayslipCalculator``; this service owns
loading snapshots, enforcing transitions against ``PAYROLL_RUN_WORKFLOW``
and the transaction boundary.

Architecture position
---------------------
**Modules layer** -- ``PayrollRunService`` is the sole public entry point
for payroll run operations.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on any exception).
* At most one run per (company, fiscal_year, month): checked up front and
  backed by the ``uq_payroll_run_period`` constraint.
* ``process_run`` is all-or-nothing: every payslip is computed before any
  row is written, and the payslip rows plus the status change commit in a
  single transaction.  Any failure leaves the run in draft with no payslips.
* The run row is locked (``SELECT ... FOR UPDATE`` where supported) while
  it is processed, finalized or deleted.

Failure modes
-------------
* ``DuplicateRunError``        -- create_run on an existing period.
* ``PayrollRunNotFoundError``  -- unknown run id.
* ``RunNotInDraftError``       -- process_run / delete_run on a non-draft run.
* ``RunNotProcessedError``     -- finalize_run on a run that is not processed.
* ``EmployeeCompanyMismatchError`` -- process_run given another company's employee.
* ``EmployeeNotFoundError``    -- process_run given an employee not on record.
* Engine errors (``InvalidSalaryConfigurationError``,
  ``NoTaxBracketsForFiscalYearError``) abort the whole run.

Usage::

    service = PayrollRunService(session, clock=clock)
    run = service.create_run(company_id, "2082/83", 4, actor_id=actor_id)
    payslips = service.process_run(
        run.id, actor_id=actor_id,
        overtime_hours_by_employee={employee_id: Decimal("10")},
        include_festival_allowance=True,
    )
    service.finalize_run(run.id, actor_id=actor_id)
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_engines.tax import TaxBracket
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.exceptions import (
    DuplicateRunError,
    EmployeeCompanyMismatchError,
    EmployeeNotFoundError,
    PayrollRunNotFoundError,
    RunNotInDraftError,
    RunNotProcessedError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.payroll.calculator import PayslipCalculator
from payroll_modules.payroll.models import (
    AttendanceSummary,
    Employee,
    MaritalStatus,
    PayrollRun,
    PayrollRunStatus,
    Payslip,
    PayrollSummary,
)
from payroll_modules.payroll.orm import PayrollRunModel, PayslipModel
from payroll_modules.payroll.selectors import (
    EmployeeSelector,
    PayrollRunSelector,
    TaxBracketSelector,
)
from payroll_modules.payroll.workflows import (
    DELETE,
    FINALIZE,
    PAYROLL_RUN_WORKFLOW,
    PROCESS,
)

logger = get_logger("modules.payroll.service")

ZERO = Decimal("0")


class PayrollRunService:
    """
    Orchestrates payroll runs.

    Contract:
        The caller supplies the session; this service commits or rolls it
        back at the end of every mutating method.
    """

    def __init__(
        self,
        session: Session,
        config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._calculator = PayslipCalculator(config)
        self._runs = PayrollRunSelector(session)
        self._employees = EmployeeSelector(session)
        self._brackets = TaxBracketSelector(session)

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def create_run(
        self,
        company_id: UUID,
        fiscal_year: str,
        month: int,
        actor_id: UUID,
    ) -> PayrollRun:
        """
        Create a draft run for (company, fiscal_year, month).

        Raises:
            DuplicateRunError: a run already exists for that key.
        """
        run = PayrollRun(company_id=company_id, fiscal_year=fiscal_year, month=month)
        with LogContext.bind(
            company_id=company_id, fiscal_year=fiscal_year, actor_id=actor_id,
        ):
            try:
                existing = self._session.scalar(
                    select(PayrollRunModel.id).where(
                        PayrollRunModel.company_id == company_id,
                        PayrollRunModel.fiscal_year == fiscal_year,
                        PayrollRunModel.month == month,
                    )
                )
                if existing is not None:
                    raise DuplicateRunError(str(company_id), fiscal_year, month)

                self._session.add(PayrollRunModel.from_dto(run, created_by_id=actor_id))
                try:
                    self._session.flush()
                except IntegrityError:
                    raise DuplicateRunError(str(company_id), fiscal_year, month) from None
                self._session.commit()
            except DuplicateRunError:
                self._session.rollback()
                logger.warning(
                    "payroll_run_duplicate_rejected",
                    extra={"month": month},
                )
                raise
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "payroll_run_created",
                extra={"payroll_run_id": str(run.id), "month": month},
            )
            return run

    def process_run(
        self,
        run_id: UUID,
        actor_id: UUID,
        employees: Sequence[Employee] | None = None,
        overtime_hours_by_employee: Mapping[UUID, Decimal] | None = None,
        include_festival_allowance: bool = False,
        attendance_by_employee: Mapping[UUID, AttendanceSummary] | None = None,
    ) -> list[Payslip]:
        """
        Compute and store one payslip per active employee, then mark the
        run processed, atomically.

        ``employees=None`` uses the company's active employees on record.
        Inactive employees in an explicit list are skipped; every employee
        in it must be on record and belong to the run's company.

        Raises:
            PayrollRunNotFoundError: unknown ``run_id``.
            RunNotInDraftError: run is not in draft.
            EmployeeCompanyMismatchError: an employee of another company.
            EmployeeNotFoundError: an employee that is not on record.
        """
        overtime_hours_by_employee = overtime_hours_by_employee or {}
        attendance_by_employee = attendance_by_employee or {}
        t0 = time.monotonic()

        with LogContext.bind(payroll_run_id=run_id, actor_id=actor_id):
            try:
                model = self._load_for_update(run_id)
                self._require_transition(model, PROCESS)

                with LogContext.bind(
                    company_id=model.company_id, fiscal_year=model.fiscal_year,
                ):
                    if employees is None:
                        employees = self._employees.active_for_company(model.company_id)
                    else:
                        self._check_roster(model, employees)
                    active = [e for e in employees if e.is_active]
                    logger.info(
                        "payroll_run_processing_started",
                        extra={
                            "employee_count": len(active),
                            "include_festival_allowance": include_festival_allowance,
                        },
                    )

                    # Compute everything before writing anything.
                    tables: dict[str, list[TaxBracket]] = {}
                    payslips: list[Payslip] = []
                    for employee in active:
                        status = MaritalStatus(employee.marital_status).value
                        if status not in tables:
                            tables[status] = self._brackets.brackets_for(
                                model.fiscal_year, status,
                            )
                        with LogContext.bind(employee_id=employee.id):
                            payslips.append(
                                self._calculator.calculate(
                                    employee,
                                    payroll_run_id=model.id,
                                    fiscal_year=model.fiscal_year,
                                    brackets=tables[status],
                                    overtime_hours=overtime_hours_by_employee.get(
                                        employee.id, ZERO,
                                    ),
                                    include_festival_allowance=include_festival_allowance,
                                    attendance=attendance_by_employee.get(employee.id),
                                )
                            )

                    for payslip in payslips:
                        self._session.add(
                            PayslipModel.from_dto(payslip, created_by_id=actor_id)
                        )
                    model.status = PayrollRunStatus.PROCESSED.value
                    model.processed_at = self._clock.now()
                    model.updated_by_id = actor_id
                    self._session.flush()
                    self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("payroll_run_processing_rolled_back", exc_info=True)
                raise

            logger.info(
                "payroll_run_processed",
                extra={
                    "payslip_count": len(payslips),
                    "total_net": str(sum((p.net_salary for p in payslips), ZERO)),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return payslips

    def finalize_run(self, run_id: UUID, actor_id: UUID) -> PayrollRun:
        """
        Lock a processed run against further edits.

        Raises:
            PayrollRunNotFoundError: unknown ``run_id``.
            RunNotProcessedError: run is not processed.
        """
        with LogContext.bind(payroll_run_id=run_id, actor_id=actor_id):
            try:
                model = self._load_for_update(run_id)
                self._require_transition(model, FINALIZE)
                model.status = PayrollRunStatus.FINALIZED.value
                model.finalized_at = self._clock.now()
                model.updated_by_id = actor_id
                self._session.flush()
                run = model.to_dto()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("payroll_run_finalized")
            return run

    def delete_run(self, run_id: UUID, actor_id: UUID) -> None:
        """
        Remove a draft run.

        Raises:
            PayrollRunNotFoundError: unknown ``run_id``.
            RunNotInDraftError: run is not in draft.
        """
        with LogContext.bind(payroll_run_id=run_id, actor_id=actor_id):
            try:
                model = self._load_for_update(run_id)
                self._require_transition(model, DELETE)
                self._session.delete(model)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("payroll_run_deleted")

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def get_run(self, run_id: UUID) -> PayrollRun:
        run = self._runs.get(run_id)
        if run is None:
            raise PayrollRunNotFoundError(str(run_id))
        return run

    def list_runs(self, company_id: UUID, fiscal_year: str | None = None) -> list[PayrollRun]:
        return self._runs.list_for_company(company_id, fiscal_year)

    def get_payslips(self, run_id: UUID) -> list[Payslip]:
        return self._runs.payslips(run_id)

    def employees_on_probation(
        self, company_id: UUID, today: date | None = None,
    ) -> list[Employee]:
        """Active employees still inside their probation period."""
        return self._employees.on_probation(
            company_id, today or self._clock.today(), self._config,
        )

    def summarize_run(self, run_id: UUID) -> PayrollSummary:
        """Totals over a run's payslips (all zero for a draft run)."""
        self.get_run(run_id)
        payslips = self.get_payslips(run_id)

        def total(attr: str) -> Decimal:
            return sum((getattr(p, attr) for p in payslips), ZERO)

        return PayrollSummary(
            payroll_run_id=run_id,
            employee_count=len(payslips),
            total_gross=total("gross_salary"),
            total_ssf_employee=total("ssf_employee_contribution"),
            total_ssf_employer=total("ssf_employer_contribution"),
            total_tax=total("income_tax") + total("social_security_tax"),
            total_deductions=total("total_deductions"),
            total_net=total("net_salary"),
        )

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _load_for_update(self, run_id: UUID) -> PayrollRunModel:
        model = self._session.scalar(
            select(PayrollRunModel)
            .where(PayrollRunModel.id == run_id)
            .with_for_update()
        )
        if model is None:
            raise PayrollRunNotFoundError(str(run_id))
        return model

    def _check_roster(self, model: PayrollRunModel, employees: Sequence[Employee]) -> None:
        for employee in employees:
            if employee.company_id != model.company_id:
                raise EmployeeCompanyMismatchError(
                    str(model.id), str(employee.id),
                    str(model.company_id), str(employee.company_id),
                )
        stored = self._employees.stored_ids({e.id for e in employees})
        for employee in employees:
            if employee.id not in stored:
                raise EmployeeNotFoundError(str(employee.id))

    @staticmethod
    def _require_transition(model: PayrollRunModel, action: str) -> None:
        if PAYROLL_RUN_WORKFLOW.find_transition(model.status, action) is not None:
            return
        logger.warning(
            "payroll_run_transition_rejected",
            extra={"action": action, "status": model.status},
        )
        if action == FINALIZE:
            raise RunNotProcessedError(str(model.id), model.status)
        raise RunNotInDraftError(str(model.id), model.status)
