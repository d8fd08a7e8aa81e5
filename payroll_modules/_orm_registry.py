"""
Module ORM Registry (``payroll_modules._orm_registry``).

Ensures every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds their table definitions before tables are created.

Usage
-----
Entrypoints and ``tests/conftest.py`` call ``create_all_tables()`` (engine
initialized) or ``import_all_orm_models()`` followed by
``Base.metadata.create_all(engine)``.
"""


def import_all_orm_models() -> None:
    """Import every ``payroll_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import payroll_modules.payroll.orm  # noqa: F401
    import payroll_modules.leave.orm  # noqa: F401
    # fmt: on


def create_all_tables(install_listeners: bool = True) -> None:
    """Create every payroll and leave table, then register immutability listeners.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from payroll_kernel.db.engine import create_tables
    from payroll_kernel.db.immutability import register_immutability_listeners

    create_tables()
    if install_listeners:
        register_immutability_listeners()
