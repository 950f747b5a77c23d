"""
Role catalogue (``dealflow_kernel.domain.roles``).

The six organisational roles that appear on actor records, audit entries and
transition declarations.  Role gating is declared per transition in each
module's ``workflows.py``; this module only names the roles.
"""

from enum import Enum


class Role(str, Enum):
    """Organisational role of an actor.  Values are the stored literals."""

    SALES_EXECUTIVE = "Sales Executive"
    SALES_MANAGER = "Sales Manager"
    BUSINESS_HEAD = "Business Head"
    DIRECTOR = "Director"
    OPERATIONS_MANAGER = "Operations Manager"
    FINANCE_MANAGER = "Finance Manager"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


def role_value(role: "Role | str") -> str:
    """Normalise a Role or a raw literal to its stored string."""
    return role.value if isinstance(role, Role) else str(role)
