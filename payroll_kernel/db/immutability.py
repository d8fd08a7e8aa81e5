"""
ORM-Level Immutability Enforcement.

Payroll output must be tamper-proof once produced: a payslip is written
exactly once, while its run moves ``draft -> processed``, and a finalized
run is locked.  Corrections are made with a new run, never by editing
history.

SQLAlchemy fires mapper events before UPDATE/DELETE statements are sent:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() ------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

Entity          | When immutable
----------------|------------------------------------------
Payslip         | ALWAYS (from creation)
PayrollRun      | UPDATE once finalized; DELETE once not draft

Usage:

    from payroll_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must deliberately violate a rule call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = ("updated_at", "updated_by_id")


def _block(entity_type: str, entity_id, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _check_payslip_immutability(mapper, connection, target):
    """Payslips never change after insert."""
    changed = _changed_fields(target)
    if changed:
        _block(
            "Payslip", target.id, "UPDATE",
            f"Cannot modify field '{changed[0]}' on a payslip",
            field=changed[0],
        )


def _check_payslip_delete(mapper, connection, target):
    _block("Payslip", target.id, "DELETE", "Payslips cannot be deleted")


def _check_payroll_run_immutability(mapper, connection, target):
    """
    Block any change to a run that was already finalized.

    The finalize transition itself (processed -> finalized) is allowed:
    only the status the row had BEFORE this flush is considered.
    """
    from payroll_modules.payroll.models import PayrollRunStatus

    status_history = get_history(target, "status")
    if status_history.deleted:
        previous = status_history.deleted[0]
    else:
        previous = target.status

    if previous != PayrollRunStatus.FINALIZED.value:
        return

    changed = _changed_fields(target)
    if changed:
        _block(
            "PayrollRun", target.id, "UPDATE",
            f"Cannot modify field '{changed[0]}' on a finalized payroll run",
            field=changed[0],
        )


def _check_payroll_run_delete(mapper, connection, target):
    from payroll_modules.payroll.models import PayrollRunStatus

    status_history = get_history(target, "status")
    status = status_history.deleted[0] if status_history.deleted else target.status
    if status != PayrollRunStatus.DRAFT.value:
        _block(
            "PayrollRun", target.id, "DELETE",
            f"Payroll runs can only be deleted while draft (status: {status})",
            status=status,
        )


def _listeners():
    from payroll_modules.payroll.orm import PayrollRunModel, PayslipModel

    return (
        (PayslipModel, "before_update", _check_payslip_immutability),
        (PayslipModel, "before_delete", _check_payslip_delete),
        (PayrollRunModel, "before_update", _check_payroll_run_immutability),
        (PayrollRunModel, "before_delete", _check_payroll_run_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
