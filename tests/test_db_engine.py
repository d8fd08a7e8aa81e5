"""Tests for engine initialization and the session_scope unit of work."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from payroll_kernel.db.engine import (
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from payroll_modules._orm_registry import create_all_tables
from payroll_modules.payroll.models import PayrollRun
from payroll_modules.payroll.orm import PayrollRunModel


@pytest.fixture
def file_engine(tmp_path):
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'payroll.db'}")
    create_all_tables()
    yield engine
    drop_tables()
    reset_engine()


class TestEngineLifecycle:

    def test_uninitialized(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()

    def test_sqlite_url(self, file_engine):
        assert get_engine() is file_engine
        assert file_engine.dialect.name == "sqlite"


class TestSessionScope:

    def test_commits_on_success(self, file_engine, actor_id):
        run = PayrollRun(company_id=uuid4(), fiscal_year="2082/83", month=1)
        with session_scope() as session:
            session.add(PayrollRunModel.from_dto(run, created_by_id=actor_id))

        with session_scope() as session:
            assert session.get(PayrollRunModel, run.id) is not None

    def test_rolls_back_on_error(self, file_engine, actor_id, captured_logs):
        run = PayrollRun(company_id=uuid4(), fiscal_year="2082/83", month=2)
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(PayrollRunModel.from_dto(run, created_by_id=actor_id))
                session.flush()
                raise RuntimeError("abort")

        with session_scope() as session:
            assert session.scalar(
                select(PayrollRunModel).where(PayrollRunModel.id == run.id)
            ) is None
        assert "transaction_rolled_back" in [r["message"] for r in captured_logs()]
