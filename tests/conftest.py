"""
Pytest fixtures for the payroll test suite.

Provides:
- In-memory SQLite sessions with every payroll and leave table
- Immutability listeners registered for the whole session
- Deterministic clock and actor id
- Structured logging configured once, with a ``captured_logs`` fixture
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from payroll_config import get_jurisdiction_config
from payroll_engines.salary import EmploymentType
from payroll_kernel.db.base import Base
from payroll_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_modules._orm_registry import import_all_orm_models
from payroll_modules.payroll.models import Employee, Gender, MaritalStatus
from payroll_modules.payroll.orm import EmployeeModel
from payroll_modules.payroll.reference_data import TaxTableInstaller

TEST_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")
FISCAL_YEAR = "2082/83"
FISCAL_YEAR_START = date(2025, 7, 17)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payroll_service):
            payroll_service.create_run(...)
            logs = captured_logs()
            assert any(r["message"] == "payroll_run_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def engine():
    """One in-memory SQLite database per test session."""
    import_all_orm_models()
    eng = create_engine("sqlite://")
    Base.metadata.create_all(eng)
    register_immutability_listeners()
    yield eng
    unregister_immutability_listeners()
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """Session whose tables are emptied after each test."""
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    sess = factory()
    yield sess
    sess.rollback()
    sess.close()
    unregister_immutability_listeners()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    register_immutability_listeners()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def company_id() -> UUID:
    return uuid4()


@pytest.fixture
def jurisdiction():
    return get_jurisdiction_config("np_2082_83")


@pytest.fixture
def installed_tax_tables(session, jurisdiction):
    """Nepal FY 2082/83 bracket tables in ``payroll_tax_brackets``."""
    TaxTableInstaller(session).install(jurisdiction, actor_id=TEST_ACTOR_ID)
    session.commit()
    return jurisdiction


@pytest.fixture
def make_employee(session, company_id):
    """Persist an employee and return its DTO."""

    def _make(
        code: str = "EMP-001",
        basic_salary: Decimal = Decimal("50000"),
        **overrides,
    ) -> Employee:
        fields = dict(
            company_id=company_id,
            employee_code=code,
            full_name=f"Employee {code}",
            employment_type=EmploymentType.REGULAR,
            basic_salary=basic_salary,
            marital_status=MaritalStatus.SINGLE,
            gender=Gender.MALE,
            date_of_join=date(2024, 1, 1),
        )
        fields.update(overrides)
        employee = Employee(**fields)
        session.add(EmployeeModel.from_dto(employee, created_by_id=TEST_ACTOR_ID))
        session.commit()
        return employee

    return _make
