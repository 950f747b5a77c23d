"""
Sales Workflows (``dealflow_modules.sales.workflows``).

Responsibility
--------------
State machines for opportunities, deals and deal requests.  Role gating is
declared on each transition; the workflow executor enforces it.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports the
canonical Guard/Transition/Workflow from ``dealflow_kernel.domain.workflow``.

Invariants enforced
-------------------
* ``Converted to Deal``, ``Lost``, ``Approved`` and ``Rejected`` are
  terminal.
* ``mark_lost`` requires a reason.

Audit relevance
---------------
Workflow definitions are logged at module-load time with state and
transition counts.
"""

from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import Transition, Workflow
from dealflow_kernel.logging_config import get_logger

logger = get_logger("modules.sales.workflows")

QUALIFYING_ROLES = (Role.SALES_MANAGER.value,)

OPPORTUNITY_CREATORS = (Role.SALES_EXECUTIVE.value, Role.SALES_MANAGER.value)

DEAL_CREATORS = (
    Role.SALES_EXECUTIVE.value,
    Role.SALES_MANAGER.value,
    Role.BUSINESS_HEAD.value,
    Role.OPERATIONS_MANAGER.value,
)

DEAL_APPROVERS = (
    Role.DIRECTOR.value,
    Role.BUSINESS_HEAD.value,
    Role.SALES_MANAGER.value,
)

DEAL_REQUEST_APPROVERS = (Role.BUSINESS_HEAD.value, Role.DIRECTOR.value)

ACKNOWLEDGING_ROLES = (Role.OPERATIONS_MANAGER.value,)


# -----------------------------------------------------------------------------
# Opportunity
# -----------------------------------------------------------------------------

OPPORTUNITY_WORKFLOW = Workflow(
    name="sales_opportunity",
    description="Sales lead from first contact to conversion or loss",
    initial_state="New",
    states=("New", "Qualified", "Sent to Delivery", "Converted to Deal", "Lost"),
    terminal_states=("Converted to Deal", "Lost"),
    transitions=(
        Transition("New", "Qualified", action="qualify", required_roles=QUALIFYING_ROLES),
        Transition(
            "Qualified", "Sent to Delivery",
            action="send_to_delivery", required_roles=QUALIFYING_ROLES,
        ),
        Transition("Qualified", "Converted to Deal", action="convert", required_roles=DEAL_CREATORS),
        Transition(
            "Sent to Delivery", "Converted to Deal",
            action="convert", required_roles=DEAL_CREATORS,
        ),
        Transition(
            "New", "Lost",
            action="mark_lost", required_roles=QUALIFYING_ROLES, requires_reason=True,
        ),
        Transition(
            "Qualified", "Lost",
            action="mark_lost", required_roles=QUALIFYING_ROLES, requires_reason=True,
        ),
    ),
)

logger.info(
    "sales_opportunity_workflow_registered",
    extra={
        "workflow_name": OPPORTUNITY_WORKFLOW.name,
        "state_count": len(OPPORTUNITY_WORKFLOW.states),
        "transition_count": len(OPPORTUNITY_WORKFLOW.transitions),
    },
)


# -----------------------------------------------------------------------------
# Deal
# -----------------------------------------------------------------------------

DEAL_WORKFLOW = Workflow(
    name="sales_deal",
    description="Deal approval",
    initial_state="Pending",
    states=("Pending", "Approved", "Rejected"),
    terminal_states=("Approved", "Rejected"),
    transitions=(
        Transition("Pending", "Approved", action="approve", required_roles=DEAL_APPROVERS),
        Transition("Pending", "Rejected", action="reject", required_roles=DEAL_APPROVERS),
    ),
)

logger.info(
    "sales_deal_workflow_registered",
    extra={
        "workflow_name": DEAL_WORKFLOW.name,
        "state_count": len(DEAL_WORKFLOW.states),
        "transition_count": len(DEAL_WORKFLOW.transitions),
    },
)


# -----------------------------------------------------------------------------
# Deal request
# -----------------------------------------------------------------------------

DEAL_REQUEST_WORKFLOW = Workflow(
    name="sales_deal_request",
    description="Deal request approval",
    initial_state="Pending",
    states=("Pending", "Approved", "Rejected"),
    terminal_states=("Approved", "Rejected"),
    transitions=(
        Transition("Pending", "Approved", action="approve", required_roles=DEAL_REQUEST_APPROVERS),
        Transition(
            "Pending", "Rejected",
            action="reject", required_roles=DEAL_REQUEST_APPROVERS, requires_reason=True,
        ),
    ),
)

logger.info(
    "sales_deal_request_workflow_registered",
    extra={
        "workflow_name": DEAL_REQUEST_WORKFLOW.name,
        "state_count": len(DEAL_REQUEST_WORKFLOW.states),
        "transition_count": len(DEAL_REQUEST_WORKFLOW.transitions),
    },
)
