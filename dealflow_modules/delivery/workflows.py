"""
Delivery Workflows (``dealflow_modules.delivery.workflows``).

Program delivery lifecycle.  Operations owns every transition; putting a
program on hold or cancelling it requires a deviation reason.
"""

from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import Transition, Workflow
from dealflow_kernel.logging_config import get_logger

logger = get_logger("modules.delivery.workflows")

DELIVERY_ROLES = (Role.OPERATIONS_MANAGER.value,)

PROGRAM_CREATORS = (Role.OPERATIONS_MANAGER.value, Role.BUSINESS_HEAD.value)

PROGRAM_WORKFLOW = Workflow(
    name="delivery_program",
    description="Program delivery from scheduling to completion",
    initial_state="Scheduled",
    states=("Scheduled", "In Progress", "On Hold", "Completed", "Cancelled"),
    terminal_states=("Completed", "Cancelled"),
    transitions=(
        Transition("Scheduled", "In Progress", action="start", required_roles=DELIVERY_ROLES),
        Transition("In Progress", "Completed", action="complete", required_roles=DELIVERY_ROLES),
        Transition(
            "Scheduled", "On Hold",
            action="hold", required_roles=DELIVERY_ROLES, requires_reason=True,
        ),
        Transition(
            "In Progress", "On Hold",
            action="hold", required_roles=DELIVERY_ROLES, requires_reason=True,
        ),
        Transition("On Hold", "In Progress", action="resume", required_roles=DELIVERY_ROLES),
        Transition(
            "Scheduled", "Cancelled",
            action="cancel", required_roles=DELIVERY_ROLES, requires_reason=True,
        ),
        Transition(
            "In Progress", "Cancelled",
            action="cancel", required_roles=DELIVERY_ROLES, requires_reason=True,
        ),
        Transition(
            "On Hold", "Cancelled",
            action="cancel", required_roles=DELIVERY_ROLES, requires_reason=True,
        ),
    ),
)

logger.info(
    "delivery_program_workflow_registered",
    extra={
        "workflow_name": PROGRAM_WORKFLOW.name,
        "state_count": len(PROGRAM_WORKFLOW.states),
        "transition_count": len(PROGRAM_WORKFLOW.transitions),
    },
)
