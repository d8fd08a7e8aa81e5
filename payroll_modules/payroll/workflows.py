"""Payroll Workflows.

State machine for payroll run processing:

    draft --process--> processed --finalize--> finalized
    draft --delete--> (removed)

Transitions are forward-only; a finalized run is terminal.
"""

from payroll_kernel.domain.workflow import Transition, Workflow
from payroll_modules.payroll.models import PayrollRunStatus

DRAFT = PayrollRunStatus.DRAFT.value
PROCESSED = PayrollRunStatus.PROCESSED.value
FINALIZED = PayrollRunStatus.FINALIZED.value

PROCESS = "process"
FINALIZE = "finalize"
DELETE = "delete"

PAYROLL_RUN_WORKFLOW = Workflow(
    name="payroll_run",
    description="Monthly payroll run lifecycle",
    initial_state=DRAFT,
    states=(DRAFT, PROCESSED, FINALIZED),
    transitions=(
        Transition(DRAFT, PROCESSED, action=PROCESS),
        Transition(PROCESSED, FINALIZED, action=FINALIZE),
        Transition(DRAFT, None, action=DELETE),
    ),
    terminal_states=(FINALIZED,),
)
