"""
Delivery Module Service (``dealflow_modules.delivery.service``).

Responsibility
--------------
Program creation and cost maintenance (GP derivation on every save),
delivery status transitions, and trainer / client sign-off.  A client
sign-off hands a ``PROGRAM_CLIENT_SIGNED_OFF`` trigger to the cascade
listener, which marks the program eligible for invoicing.

Architecture position
---------------------
**Modules layer**.  Owns the transaction for every public method.

Invariants enforced
-------------------
* ``final_gp == tov - total_costs`` after every save.
* Sign-off flags only move from False to True; a repeated sign-off keeps
  the first timestamp and re-delivers the trigger.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from dealflow_engines.gross_profit import GP_INPUT_FIELDS
from dealflow_kernel.db.types import ZERO
from dealflow_kernel.domain.cascade import CascadeListener, CascadeTrigger, TriggerEvent
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import FieldChanges, TransitionRecorded
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_modules._helpers import (
    assign_amounts,
    commit_or_rollback,
    derive_gross_profit,
    load_or_raise,
    parse_enum,
    require_role,
    require_text,
)
from dealflow_modules.delivery.models import Program, SignOffKind
from dealflow_modules.delivery.orm import ProgramModel
from dealflow_modules.delivery.workflows import DELIVERY_ROLES, PROGRAM_CREATORS, PROGRAM_WORKFLOW
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.delivery.service")

PROGRAM = "Program"


class DeliveryService:
    """Programs and sign-offs."""

    def __init__(
        self,
        session: Session,
        workflow_executor: WorkflowExecutor,
        identifiers: IdentifierService,
        ledger: LedgerService,
        clock: Clock | None = None,
        cascade: CascadeListener | None = None,
    ):
        self._session = session
        self._workflow_executor = workflow_executor
        self._identifiers = identifiers
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._cascade = cascade

    def get_program(self, program_id: UUID) -> Program:
        return load_or_raise(self._session, ProgramModel, program_id, PROGRAM).to_dto()

    def create_program(
        self,
        program_name: str,
        client_name: str,
        actor_id: UUID,
        actor_role: str,
        costs: Mapping[str, Any] | None = None,
        deal_id: UUID | None = None,
        opportunity_id: UUID | None = None,
        sac_code: str | None = None,
    ) -> Program:
        require_role(PROGRAM, "new", "create", actor_role, PROGRAM_CREATORS)
        program_name = require_text(PROGRAM, "program_name", program_name)
        client_name = require_text(PROGRAM, "client_name", client_name)

        with commit_or_rollback(self._session, "program_create", program_name=program_name):
            now = self._clock.now()
            program = ProgramModel(
                program_code=self._identifiers.next_program_code(),
                program_name=program_name,
                client_name=client_name,
                deal_id=deal_id,
                opportunity_id=opportunity_id,
                sac_code=sac_code,
                delivery_status=PROGRAM_WORKFLOW.initial_state,
                gp_percent=ZERO,
                trainer_sign_off=False,
                client_sign_off=False,
                invoice_eligible=False,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
                **{name: ZERO for name in GP_INPUT_FIELDS if not name.endswith("_percent")},
            )
            assign_amounts(program, costs, GP_INPUT_FIELDS)
            derive_gross_profit(program)
            self._session.add(program)
            self._session.flush()

            self._ledger.record_audit(
                action="program_created",
                entity_type=PROGRAM,
                entity_id=program.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    program_code=program.program_code,
                    tov=program.tov,
                    final_gp=program.final_gp,
                    deal_id=deal_id,
                ),
            )

        logger.info(
            "program_created",
            extra={
                "program_id": str(program.id),
                "program_code": program.program_code,
                "final_gp": str(program.final_gp),
            },
        )
        return program.to_dto()

    def update_program_costs(
        self,
        program_id: UUID,
        costs: Mapping[str, Any],
        actor_id: UUID,
        actor_role: str,
    ) -> Program:
        with commit_or_rollback(self._session, "program_update", program_id=str(program_id)):
            program = load_or_raise(self._session, ProgramModel, program_id, PROGRAM)
            assign_amounts(program, costs, GP_INPUT_FIELDS)
            derive_gross_profit(program)
            program.updated_by_id = actor_id
            program.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="program_costs_updated",
                entity_type=PROGRAM,
                entity_id=program.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(final_gp=program.final_gp, gp_percent=program.gp_percent),
            )
        return program.to_dto()

    def transition_program(
        self,
        program_id: UUID,
        action: str,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> Program:
        """Move the delivery status (start, hold, resume, complete, cancel)."""
        with commit_or_rollback(
            self._session, "program_transition", program_id=str(program_id), action=action
        ):
            program = load_or_raise(self._session, ProgramModel, program_id, PROGRAM)
            from_state = program.delivery_status
            program.delivery_status = self._workflow_executor.require_transition(
                PROGRAM_WORKFLOW, PROGRAM, program.id, from_state, action, actor_role,
                reason=reason,
            )
            if reason:
                program.deviation_reason = reason
            program.updated_by_id = actor_id
            self._session.flush()
            self._ledger.record_audit(
                action=f"program_{action}",
                entity_type=PROGRAM,
                entity_id=program.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=TransitionRecorded(
                    action=action,
                    from_state=from_state,
                    to_state=program.delivery_status,
                    reason=reason,
                ),
            )
        return program.to_dto()

    def record_sign_off(
        self,
        program_id: UUID,
        kind: str,
        actor_id: UUID,
        actor_role: str,
    ) -> Program:
        """
        Record a trainer or client sign-off.

        A client sign-off fires ``PROGRAM_CLIENT_SIGNED_OFF`` after commit.
        """
        sign_off = parse_enum(SignOffKind, kind, "kind")
        require_role(PROGRAM, str(program_id), f"{sign_off.value}_sign_off", actor_role, DELIVERY_ROLES)

        with commit_or_rollback(
            self._session, "program_sign_off", program_id=str(program_id), kind=sign_off.value
        ):
            program = load_or_raise(self._session, ProgramModel, program_id, PROGRAM)
            now = self._clock.now()
            if sign_off is SignOffKind.TRAINER:
                if not program.trainer_sign_off:
                    program.trainer_sign_off = True
                    program.trainer_sign_off_at = now
            elif not program.client_sign_off:
                program.client_sign_off = True
                program.client_sign_off_at = now
            program.updated_by_id = actor_id
            self._session.flush()
            self._ledger.record_audit(
                action=f"program_{sign_off.value}_signed_off",
                entity_type=PROGRAM,
                entity_id=program.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    trainer_sign_off=program.trainer_sign_off,
                    client_sign_off=program.client_sign_off,
                ),
            )

        logger.info(
            "program_signed_off",
            extra={"program_id": str(program_id), "kind": sign_off.value},
        )

        if sign_off is SignOffKind.CLIENT and self._cascade is not None:
            self._cascade.handle(TriggerEvent(
                trigger=CascadeTrigger.PROGRAM_CLIENT_SIGNED_OFF,
                entity_type=PROGRAM,
                entity_id=program.id,
                actor_id=actor_id,
                actor_role=actor_role,
            ))
        return self.get_program(program.id)
