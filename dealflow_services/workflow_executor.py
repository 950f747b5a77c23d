"""
dealflow_services.workflow_executor -- Workflow transition execution.

Responsibility:
    Executes state transitions declared by the module workflows: finds the
    transition for (current state, action), checks the role the transition
    declares, checks the reason requirement, and evaluates the guard.
    Every attempt emits a ``workflow_transition`` trace record.

Architecture position:
    Services layer.  May import from dealflow_kernel (domain, exceptions,
    logging).  Module services receive an executor by injection.

Invariants enforced:
    - A transition fires only if it is declared for the current state.
    - Role gating is read from the transition (``required_roles``); the
      executor holds no per-entity role tables.
    - Order of checks: transition exists, role, reason, guard.
    - Unknown guard names fail closed.

Failure modes:
    - ``execute_transition`` never raises; it returns a TransitionResult
      with an outcome code.
    - ``require_transition`` raises the typed WorkflowError subclass for
      the outcome.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from dealflow_kernel.domain.workflow import Guard, Transition, TransitionResult, Workflow
from dealflow_kernel.exceptions import (
    InvalidTransitionError,
    TransitionGuardFailedError,
    TransitionReasonRequiredError,
    UnauthorizedTransitionError,
)
from dealflow_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_ROLE_DENIED = "role_denied"
OUTCOME_REASON_REQUIRED = "reason_required"
OUTCOME_GUARD_FAILED = "guard_failed"


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: UUID,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    actor_role: str,
    to_state: str | None = None,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
        "actor_role": actor_role,
    }
    if to_state is not None:
        record["to_state"] = to_state
    for key, val in LogContext.get_all().items():
        record.setdefault(key, val)
    logger.info("workflow_transition", extra=record)


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _get_attr(context: Any, key: str, default: Any = None) -> Any:
    """Get attribute from context (object or dict)."""
    if context is None:
        return default
    if hasattr(context, "get") and callable(getattr(context, "get")):
        return context.get(key, default)
    return getattr(context, key, default)


def _outstanding_settled(context: Any) -> bool:
    """Payable/Invoice paid: nothing left outstanding."""
    outstanding = _get_attr(context, "outstanding_amount")
    if outstanding is None:
        return False
    return Decimal(str(outstanding)) == 0


def _vendor_assigned(context: Any) -> bool:
    """PO issue: a real vendor replaced the placeholder."""
    vendor = _get_attr(context, "vendor_name")
    return bool(vendor) and vendor != "Pending Assignment"


def _client_signed_off(context: Any) -> bool:
    return bool(_get_attr(context, "client_sign_off", False))


class GuardExecutor:
    """Evaluates workflow guards against context.

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        """Returns True if the guard passes; unknown guards fail closed."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        try:
            return bool(fn(context))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "guard_evaluation_error",
                extra={"guard_name": guard.name, "error": str(e)},
            )
            return False


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with the built-in evaluators registered."""
    ex = GuardExecutor()
    ex.register("outstanding_settled", _outstanding_settled)
    ex.register("vendor_assigned", _vendor_assigned)
    ex.register("client_signed_off", _client_signed_off)
    return ex


# ---------------------------------------------------------------------------
# WorkflowExecutor
# ---------------------------------------------------------------------------


class WorkflowExecutor:
    """Executes workflow transitions with role, reason and guard checks."""

    def __init__(self, guard_executor: GuardExecutor | None = None) -> None:
        self._guard_executor = guard_executor or default_guard_executor()

    def execute_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        actor_role: str,
        reason: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Evaluate a transition attempt.  Never raises."""
        t0 = time.monotonic()

        def _trace(outcome: str, why: str, to_state: str | None = None) -> None:
            _emit_workflow_trace(
                workflow_name=workflow.name,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                from_state=current_state,
                outcome=outcome,
                reason=why,
                duration_ms=(time.monotonic() - t0) * 1000,
                actor_role=actor_role,
                to_state=to_state,
            )

        transition = workflow.find_transition(current_state, action)
        if transition is None:
            why = (
                f"No transition from '{current_state}' via action '{action}' "
                f"in workflow '{workflow.name}'"
            )
            _trace(OUTCOME_NO_TRANSITION, why)
            return TransitionResult(success=False, outcome=OUTCOME_NO_TRANSITION, reason=why)

        if not transition.permits(actor_role):
            why = f"Role '{actor_role}' not in {list(transition.required_roles)}"
            _trace(OUTCOME_ROLE_DENIED, why)
            return TransitionResult(
                success=False,
                outcome=OUTCOME_ROLE_DENIED,
                reason=why,
                required_roles=transition.required_roles,
            )

        if transition.requires_reason and not (reason and reason.strip()):
            why = f"Action '{action}' requires a reason"
            _trace(OUTCOME_REASON_REQUIRED, why)
            return TransitionResult(success=False, outcome=OUTCOME_REASON_REQUIRED, reason=why)

        if transition.guard is not None and not self._guard_executor.evaluate(
            transition.guard, context or {}
        ):
            why = f"Guard not satisfied: {transition.guard.name}"
            _trace(OUTCOME_GUARD_FAILED, why)
            return TransitionResult(success=False, outcome=OUTCOME_GUARD_FAILED, reason=why)

        _trace(OUTCOME_SUCCESS, "Transition allowed", to_state=transition.to_state)
        return TransitionResult(
            success=True,
            outcome=OUTCOME_SUCCESS,
            new_state=transition.to_state,
            reason="Transition allowed",
        )

    def require_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        actor_role: str,
        reason: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> str:
        """
        Evaluate a transition and return the new state, raising on rejection.

        Raises:
            InvalidTransitionError, UnauthorizedTransitionError,
            TransitionReasonRequiredError, TransitionGuardFailedError.
        """
        result = self.execute_transition(
            workflow, entity_type, entity_id, current_state, action,
            actor_role, reason=reason, context=context,
        )
        if result.success:
            return result.new_state  # type: ignore[return-value]

        eid = str(entity_id)
        if result.outcome == OUTCOME_ROLE_DENIED:
            raise UnauthorizedTransitionError(
                entity_type, eid, action, actor_role, result.required_roles
            )
        if result.outcome == OUTCOME_REASON_REQUIRED:
            raise TransitionReasonRequiredError(entity_type, eid, action)
        if result.outcome == OUTCOME_GUARD_FAILED:
            transition: Transition = workflow.find_transition(current_state, action)  # type: ignore[assignment]
            raise TransitionGuardFailedError(entity_type, eid, action, transition.guard.name)  # type: ignore[union-attr]
        raise InvalidTransitionError(entity_type, eid, current_state, action)
