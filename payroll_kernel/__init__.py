"""
Payroll kernel: logging, typed errors, persistence base and clock.

Shared infrastructure for ``payroll_engines`` and ``payroll_modules``.
The kernel does not import engines, modules or config at import time;
``db.immutability`` resolves the payroll ORM classes lazily when listeners
are registered.
"""
