"""
Module: payroll_kernel.selectors
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel.  Module selectors (payroll, leave) subclass
    ``BaseSelector`` to give services a read path that never mutates.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      call session.add(), session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses, not ORM rows.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from payroll_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Base class for all selectors."""

    def __init__(self, session: Session):
        self.session = session
