"""
Payroll modules: persisted payroll runs and leave balances.

    payroll   employees, tax brackets, payroll runs, payslips
    leave     company leave types and per-employee leave balances

Each module follows the same split: ``models`` (frozen DTOs), ``orm``
(SQLAlchemy persistence), ``service`` (transaction-owning orchestration).
"""
