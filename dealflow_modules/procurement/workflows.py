"""
Procurement Workflows (``dealflow_modules.procurement.workflows``).

Purchase order lifecycle: ``Draft -> Approved -> Issued -> Completed``,
with ``Cancelled`` reachable from every non-terminal state.  Issuing needs
a real vendor in place of the placeholder.
"""

from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import Guard, Transition, Workflow
from dealflow_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.workflows")

PO_CREATORS = (Role.OPERATIONS_MANAGER.value,)

PO_APPROVERS = (
    Role.DIRECTOR.value,
    Role.FINANCE_MANAGER.value,
    Role.OPERATIONS_MANAGER.value,
)

VENDOR_ASSIGNED = Guard(
    name="vendor_assigned",
    description="A vendor has replaced the Pending Assignment placeholder",
)

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="procurement_purchase_order",
    description="Vendor purchase order lifecycle",
    initial_state="Draft",
    states=("Draft", "Approved", "Issued", "Completed", "Cancelled"),
    terminal_states=("Completed", "Cancelled"),
    transitions=(
        Transition("Draft", "Approved", action="approve", required_roles=PO_APPROVERS),
        Transition(
            "Approved", "Issued",
            action="issue", guard=VENDOR_ASSIGNED, required_roles=PO_CREATORS,
        ),
        Transition("Issued", "Completed", action="complete", required_roles=PO_CREATORS),
        Transition("Draft", "Cancelled", action="cancel", required_roles=PO_APPROVERS),
        Transition("Approved", "Cancelled", action="cancel", required_roles=PO_APPROVERS),
        Transition("Issued", "Cancelled", action="cancel", required_roles=PO_APPROVERS),
    ),
)

logger.info(
    "procurement_po_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
    },
)
