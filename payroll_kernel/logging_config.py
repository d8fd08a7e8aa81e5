"""
Structured JSON logging for payroll.

Each record is written as one JSON object per line holding:

* ``ts``, ``level``, ``logger`` and ``message`` (a snake_case event name);
* the payroll scope bound with ``LogContext.bind`` around the call;
* the ``extra`` fields of the call;
* for a logged ``PayrollKernelError``, its ``code`` and attributes as
  ``exc_*`` fields.

Usage::

    logger = get_logger("modules.payroll.service")
    with LogContext.bind(company_id=company_id, payroll_run_id=run.id):
        logger.info("payroll_run_processed", extra={"payslip_count": 12})
"""

__all__ = [
    "SCOPE_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from types import MappingProxyType
from typing import Any, TextIO

from payroll_kernel.exceptions import PayrollKernelError

ROOT_LOGGER = "payroll_kernel"
_HANDLER_NAME = "payroll_structured_json"

SCOPE_FIELDS = frozenset({
    "company_id",
    "fiscal_year",
    "payroll_run_id",
    "employee_id",
    "actor_id",
    "correlation_id",
})

_EMPTY_SCOPE: Mapping[str, str] = MappingProxyType({})
_scope: ContextVar[Mapping[str, str]] = ContextVar("payroll_log_scope", default=_EMPTY_SCOPE)


class LogContext:
    """Payroll scope attached to every record logged inside ``bind()``."""

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Add scope fields for the duration of the block.

        Values are stored as strings; ``None`` leaves a field as it was.
        Nested binds layer on the outer scope and restore it on exit.
        """
        unknown = fields.keys() - SCOPE_FIELDS
        if unknown:
            raise TypeError(f"Unknown log scope field(s): {', '.join(sorted(unknown))}")
        merged = dict(_scope.get())
        merged.update({name: str(value) for name, value in fields.items() if value is not None})
        token = _scope.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _scope.reset(token)

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_scope.get())

    @staticmethod
    def clear() -> None:
        _scope.set(_EMPTY_SCOPE)


_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _to_json(value: Any) -> Any:
    # UUID and Decimal fall through to str
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
    if isinstance(exc, PayrollKernelError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_scope.get(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``payroll_kernel`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Attach the JSON handler to the ``payroll_kernel`` logger.

    Returns the attached handler. While one is attached, further calls
    change nothing and return it.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for existing in root.handlers:
        if existing.get_name() == _HANDLER_NAME:
            return existing
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return handler


def reset_logging() -> None:
    """Detach the JSON handler. For tests."""
    root = logging.getLogger(ROOT_LOGGER)
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.setLevel(logging.WARNING)
    root.propagate = True
