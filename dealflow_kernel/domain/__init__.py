"""
Pure domain layer.

Value objects shared by every dealflow layer, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from dealflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.domain.workflow import (
    Guard,
    Transition,
    TransitionResult,
    Workflow,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Role",
    "Guard",
    "Transition",
    "TransitionResult",
    "Workflow",
]
