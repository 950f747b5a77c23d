"""
Payables Workflows (``dealflow_modules.payables.workflows``).

The payable status is derived from its hold / release flags and the
outstanding balance; this table states which operator actions are legal
from each derived status and who may perform them.
"""

from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import Guard, Transition, Workflow
from dealflow_kernel.logging_config import get_logger

logger = get_logger("modules.payables.workflows")

PAYABLE_ROLES = (Role.FINANCE_MANAGER.value, Role.DIRECTOR.value)

VENDOR_MAINTAINERS = (Role.OPERATIONS_MANAGER.value, Role.FINANCE_MANAGER.value)

OVERRIDE_ROLES = (Role.DIRECTOR.value,)

OUTSTANDING_SETTLED = Guard(
    name="outstanding_settled",
    description="Nothing remains outstanding on the payable",
)

PAYABLE_WORKFLOW = Workflow(
    name="payables_payable",
    description="Vendor payable hold / release / payment lifecycle",
    initial_state="Pending",
    states=("Pending", "On Hold", "Released", "Paid", "Cancelled"),
    terminal_states=("Paid", "Cancelled"),
    transitions=(
        Transition("Pending", "On Hold", action="hold", required_roles=PAYABLE_ROLES),
        Transition("Released", "On Hold", action="hold", required_roles=PAYABLE_ROLES),
        Transition("Pending", "Released", action="release", required_roles=PAYABLE_ROLES),
        Transition("On Hold", "Released", action="release", required_roles=PAYABLE_ROLES),
        Transition(
            "Released", "Paid",
            action="pay", guard=OUTSTANDING_SETTLED, required_roles=PAYABLE_ROLES,
        ),
        Transition("Pending", "Cancelled", action="cancel", required_roles=PAYABLE_ROLES),
        Transition("On Hold", "Cancelled", action="cancel", required_roles=PAYABLE_ROLES),
        Transition("Released", "Cancelled", action="cancel", required_roles=PAYABLE_ROLES),
    ),
)

logger.info(
    "payables_workflow_registered",
    extra={
        "workflow_name": PAYABLE_WORKFLOW.name,
        "state_count": len(PAYABLE_WORKFLOW.states),
        "transition_count": len(PAYABLE_WORKFLOW.transitions),
    },
)
