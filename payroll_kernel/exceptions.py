"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll errors have to be surfaced to an operator precisely. Matching on
message text is fragile, so every failure has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        service.process_run(run_id, actor_id=actor_id, employees=employees)
    except RunNotInDraftError as e:
        api_response(code=e.code, run=e.run_id, status=e.status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- SalaryError
    |   +-- InvalidSalaryConfigurationError
    |
    +-- TaxError
    |   +-- NoTaxBracketsForFiscalYearError
    |   +-- InvalidTaxBracketsError
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |
    +-- LeaveError
    |   +-- UnsupportedAccrualTypeError
    |   +-- InvalidLeaveTypeConfigurationError
    |   +-- LeaveTypeNotFoundError
    |
    +-- PayrollRunError
    |   +-- DuplicateRunError
    |   +-- RunNotInDraftError
    |   +-- RunNotProcessedError
    |   +-- PayrollRunNotFoundError
    |   +-- EmployeeCompanyMismatchError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                              | When Raised
-----------|-----------------------------------|------------------------------------
Salary     | INVALID_SALARY_CONFIGURATION      | Rate/units missing for a non-monthly basis
-----------|-----------------------------------|------------------------------------
Tax        | NO_TAX_BRACKETS_FOR_FISCAL_YEAR   | No brackets for (fiscal year, marital status)
           | INVALID_TAX_BRACKETS              | Brackets overlap, are unordered, or unbounded mid-table
-----------|-----------------------------------|------------------------------------
Employee   | EMPLOYEE_NOT_FOUND                | Employee ID doesn't exist
-----------|-----------------------------------|------------------------------------
Leave      | UNSUPPORTED_ACCRUAL_TYPE          | Unknown accrual policy value
           | INVALID_LEAVE_TYPE_CONFIGURATION  | per-working-days type without a positive rate
           | LEAVE_TYPE_NOT_FOUND              | Leave code unknown or not applicable to employee
-----------|-----------------------------------|------------------------------------
Run        | DUPLICATE_RUN                     | Run already exists for (company, FY, month)
           | RUN_NOT_IN_DRAFT                  | process/delete on a non-draft run
           | RUN_NOT_PROCESSED                 | finalize on a run that is not processed
           | PAYROLL_RUN_NOT_FOUND             | Run ID doesn't exist
           | EMPLOYEE_COMPANY_MISMATCH         | Employee belongs to another company than the run
-----------|-----------------------------------|------------------------------------
Immutable  | IMMUTABILITY_VIOLATION            | Modifying a payslip or finalized run

None of these are retried automatically: every calculation is
deterministic, so the same input reproduces the same error.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Salary normalization


class SalaryError(PayrollKernelError):
    """Base exception for salary-basis errors."""

    code: str = "SALARY_ERROR"


class InvalidSalaryConfigurationError(SalaryError):
    """Required rate or unit fields are missing or non-positive for a salary basis."""

    code: str = "INVALID_SALARY_CONFIGURATION"

    def __init__(self, salary_type: str, field_name: str, value: object):
        self.salary_type = salary_type
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Salary type '{salary_type}' requires a positive {field_name}, got {value!r}"
        )


# Tax


class TaxError(PayrollKernelError):
    """Base exception for income tax errors."""

    code: str = "TAX_ERROR"


class NoTaxBracketsForFiscalYearError(TaxError):
    """No tax brackets are configured for a fiscal year and marital status."""

    code: str = "NO_TAX_BRACKETS_FOR_FISCAL_YEAR"

    def __init__(self, fiscal_year: str, marital_status: str):
        self.fiscal_year = fiscal_year
        self.marital_status = marital_status
        super().__init__(
            f"No tax brackets for fiscal year {fiscal_year} ({marital_status})"
        )


class InvalidTaxBracketsError(TaxError):
    """Bracket table is not contiguous, ordered and non-overlapping."""

    code: str = "INVALID_TAX_BRACKETS"

    def __init__(self, fiscal_year: str, marital_status: str, reason: str):
        self.fiscal_year = fiscal_year
        self.marital_status = marital_status
        self.reason = reason
        super().__init__(
            f"Invalid tax brackets for fiscal year {fiscal_year} "
            f"({marital_status}): {reason}"
        )


# Employees


class EmployeeError(PayrollKernelError):
    """Base exception for employee record errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


# Leave


class LeaveError(PayrollKernelError):
    """Base exception for leave accrual errors."""

    code: str = "LEAVE_ERROR"


class UnsupportedAccrualTypeError(LeaveError):
    """Accrual policy value has no registered handler."""

    code: str = "UNSUPPORTED_ACCRUAL_TYPE"

    def __init__(self, accrual_type: object, leave_code: str | None = None):
        self.accrual_type = accrual_type
        self.leave_code = leave_code
        super().__init__(f"Unsupported accrual type: {accrual_type!r}")


class InvalidLeaveTypeConfigurationError(LeaveError):
    """Leave type settings are inconsistent with its accrual policy."""

    code: str = "INVALID_LEAVE_TYPE_CONFIGURATION"

    def __init__(self, leave_code: str, reason: str):
        self.leave_code = leave_code
        self.reason = reason
        super().__init__(f"Invalid leave type '{leave_code}': {reason}")


class LeaveTypeNotFoundError(LeaveError):
    """Leave code is unknown for the company or does not apply to the employee."""

    code: str = "LEAVE_TYPE_NOT_FOUND"

    def __init__(self, leave_code: str, company_id: str, employee_id: str | None = None):
        self.leave_code = leave_code
        self.company_id = company_id
        self.employee_id = employee_id
        if employee_id is None:
            message = f"Leave type {leave_code!r} not found for company {company_id}"
        else:
            message = f"Leave type {leave_code!r} does not apply to employee {employee_id}"
        super().__init__(message)


# Payroll run lifecycle


class PayrollRunError(PayrollKernelError):
    """Base exception for payroll run lifecycle errors."""

    code: str = "PAYROLL_RUN_ERROR"


class DuplicateRunError(PayrollRunError):
    """A payroll run already exists for (company, fiscal year, month)."""

    code: str = "DUPLICATE_RUN"

    def __init__(self, company_id: str, fiscal_year: str, month: int):
        self.company_id = company_id
        self.fiscal_year = fiscal_year
        self.month = month
        super().__init__(
            f"Payroll run already exists for company {company_id}, "
            f"fiscal year {fiscal_year}, month {month}"
        )


class RunNotInDraftError(PayrollRunError):
    """Operation requires the run to be in draft."""

    code: str = "RUN_NOT_IN_DRAFT"

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Payroll run {run_id} is {status}, expected draft")


class RunNotProcessedError(PayrollRunError):
    """Finalization requires the run to be processed."""

    code: str = "RUN_NOT_PROCESSED"

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Payroll run {run_id} is {status}, expected processed")


class PayrollRunNotFoundError(PayrollRunError):
    """Payroll run with given ID was not found."""

    code: str = "PAYROLL_RUN_NOT_FOUND"

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Payroll run not found: {run_id}")


class EmployeeCompanyMismatchError(PayrollRunError):
    """An employee passed to a run belongs to a different company."""

    code: str = "EMPLOYEE_COMPANY_MISMATCH"

    def __init__(self, run_id: str, employee_id: str, run_company_id: str, employee_company_id: str):
        self.run_id = run_id
        self.employee_id = employee_id
        self.run_company_id = run_company_id
        self.employee_company_id = employee_company_id
        super().__init__(
            f"Employee {employee_id} belongs to company {employee_company_id}, "
            f"not to payroll run {run_id} company {run_company_id}"
        )


# Immutability


class ImmutabilityError(PayrollKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a protected record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
