"""Database layer: declarative base, column types, engine and ORM guards."""

from payroll_kernel.db.base import Base, TrackedBase, UUIDString
from payroll_kernel.db.types import Money, Rate, round_money

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "Money",
    "Rate",
    "round_money",
]
