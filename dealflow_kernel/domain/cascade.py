"""
Cascade trigger contract (``dealflow_kernel.domain.cascade``).

Responsibility
--------------
The narrow seam between module services that complete a state change and
the cascade orchestrator that reacts to it.  A module service builds a
``TriggerEvent`` after its own write is committed and hands it to the
injected ``CascadeListener``; it never imports the orchestrator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and a structural protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID


class CascadeTrigger(str, Enum):
    """Completed transitions the orchestrator reacts to."""

    DEAL_APPROVED = "deal_approved"
    DEAL_REQUEST_APPROVED = "deal_request_approved"
    PROGRAM_CLIENT_SIGNED_OFF = "program_client_signed_off"
    INVOICE_CREATED = "invoice_created"
    PAYABLE_CREATED = "payable_created"
    OPPORTUNITY_CONVERTED = "opportunity_converted"


@dataclass(frozen=True)
class TriggerEvent:
    """A committed upstream change that may spawn downstream records.

    ``related_id`` carries the second entity for triggers that link two
    records (the new Deal id for ``OPPORTUNITY_CONVERTED``).
    ``hints`` carries optional caller-supplied inputs for a step, such as the
    nature of service for a payable.
    """

    trigger: CascadeTrigger
    entity_type: str
    entity_id: UUID
    actor_id: UUID
    actor_role: str
    related_id: UUID | None = None
    hints: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StepReport:
    """Result of one cascade step."""

    step: str
    succeeded: bool
    created: bool = False
    target_id: UUID | None = None
    error: str | None = None


@dataclass(frozen=True)
class CascadeReport:
    """All step results for one trigger, in execution order."""

    trigger: CascadeTrigger
    steps: tuple[StepReport, ...] = ()

    @property
    def all_succeeded(self) -> bool:
        return all(s.succeeded for s in self.steps)

    def step(self, name: str) -> StepReport | None:
        for s in self.steps:
            if s.step == name:
                return s
        return None


@runtime_checkable
class CascadeListener(Protocol):
    """Anything that reacts to committed trigger events."""

    def handle(self, event: TriggerEvent) -> CascadeReport: ...
