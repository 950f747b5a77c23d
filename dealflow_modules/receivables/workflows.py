"""
Receivables Workflows (``dealflow_modules.receivables.workflows``).

Invoice lifecycle: ``Draft -> Generated -> Sent -> Paid | Overdue``, with
``Overdue -> Paid`` and ``Cancelled`` from any state before payment.
Receivables have no operator state machine; their status is derived by
the aging engine.
"""

from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import Transition, Workflow
from dealflow_kernel.logging_config import get_logger

logger = get_logger("modules.receivables.workflows")

INVOICE_CREATORS = (Role.FINANCE_MANAGER.value,)

BILLING_ROLES = (Role.FINANCE_MANAGER.value,)

COLLECTION_ROLES = (Role.FINANCE_MANAGER.value, Role.DIRECTOR.value)

BOC_CREATORS = (
    Role.SALES_EXECUTIVE.value,
    Role.SALES_MANAGER.value,
    Role.BUSINESS_HEAD.value,
)

INVOICE_WORKFLOW = Workflow(
    name="receivables_invoice",
    description="Client invoice lifecycle",
    initial_state="Draft",
    states=("Draft", "Generated", "Sent", "Paid", "Overdue", "Cancelled"),
    terminal_states=("Paid", "Cancelled"),
    transitions=(
        Transition("Draft", "Generated", action="generate", required_roles=BILLING_ROLES),
        Transition("Generated", "Sent", action="send", required_roles=BILLING_ROLES),
        Transition("Sent", "Paid", action="mark_paid", required_roles=BILLING_ROLES),
        Transition("Sent", "Overdue", action="mark_overdue", required_roles=BILLING_ROLES),
        Transition("Overdue", "Paid", action="mark_paid", required_roles=BILLING_ROLES),
        Transition(
            "Draft", "Cancelled",
            action="cancel", required_roles=COLLECTION_ROLES, requires_reason=True,
        ),
        Transition(
            "Generated", "Cancelled",
            action="cancel", required_roles=COLLECTION_ROLES, requires_reason=True,
        ),
        Transition(
            "Sent", "Cancelled",
            action="cancel", required_roles=COLLECTION_ROLES, requires_reason=True,
        ),
    ),
)

logger.info(
    "receivables_invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
    },
)
