"""
Shared helpers for module services.

Validation of inbound literals and required fields, entity lookup, and
the commit-or-rollback boundary every public service method runs inside.

Architecture: Modules layer.  Imports from dealflow_kernel and dealflow_engines.
Shared by every module service; holds no state.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from dealflow_engines.gross_profit import (
    GP_INPUT_FIELDS,
    GrossProfitInput,
    GrossProfitResult,
    compute_gross_profit,
)
from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_kernel.domain.payloads import NotificationPayload
from dealflow_kernel.exceptions import (
    EntityNotFoundError,
    InvalidEnumValueError,
    MissingFieldError,
    UnauthorizedTransitionError,
)
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.outbox import OutboxMessage
from dealflow_kernel.services.outbox_service import OutboxService
from dealflow_kernel.utils.idempotency import generate_idempotency_key

logger = get_logger("modules.helpers")

NOTIFICATION_TOPIC = "notification"

E = TypeVar("E", bound=Enum)
M = TypeVar("M")


def parse_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Coerce a literal to ``enum_cls`` or raise InvalidEnumValueError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidEnumValueError(
            field_name, value, tuple(str(m.value) for m in enum_cls)
        ) from exc


def require_text(entity_type: str, field_name: str, value: str | None) -> str:
    """Return the stripped value or raise MissingFieldError when blank."""
    if value is None or not str(value).strip():
        raise MissingFieldError(entity_type, field_name)
    return str(value).strip()


def load_or_raise(session: Session, model: type[M], entity_id: UUID, entity_type: str) -> M:
    entity = session.get(model, entity_id)
    if entity is None:
        raise EntityNotFoundError(entity_type, str(entity_id))
    return entity


@contextmanager
def commit_or_rollback(session: Session, operation: str, **log_fields: Any) -> Iterator[None]:
    """
    Transaction boundary for a public module-service method.

    Commits when the block exits normally; on any exception rolls back,
    logs ``<operation>_rolled_back`` and re-raises.
    """
    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        logger.warning(f"{operation}_rolled_back", extra=log_fields, exc_info=True)
        raise


def require_role(
    entity_type: str,
    entity_id: str,
    action: str,
    actor_role: str,
    allowed: tuple[str, ...],
) -> None:
    """Role gate for operations that are not state transitions (create, override)."""
    if actor_role not in allowed:
        logger.warning(
            "role_denied",
            extra={"entity_type": entity_type, "action": action, "actor_role": actor_role},
        )
        raise UnauthorizedTransitionError(entity_type, entity_id, action, actor_role, allowed)


_OPTIONAL_PERCENTS = ("marketing_charges_percent", "contingency_percent")


def assign_amounts(
    model: Any,
    values: Mapping[str, Any] | None,
    allowed: tuple[str, ...],
) -> None:
    """
    Copy inbound amounts onto an ORM row as Decimals.

    Unknown keys are ignored.  Percent inputs may be None (cleared); every
    other amount must be a non-negative number.
    """
    for name, raw in (values or {}).items():
        if name not in allowed:
            continue
        if name in _OPTIONAL_PERCENTS:
            setattr(model, name, None if raw is None else to_decimal(raw, name))
        else:
            setattr(model, name, to_decimal(raw, name))


def derive_gross_profit(model: Any) -> GrossProfitResult:
    """Re-run the GP engine over a row carrying the GP cost vector and store the result."""
    result = compute_gross_profit(
        inputs=GrossProfitInput(**{name: getattr(model, name) for name in GP_INPUT_FIELDS}),
        prior_gp_percent=model.gp_percent if model.gp_percent is not None else ZERO,
    )
    model.marketing_charges_amount = result.marketing_charges_amount
    model.contingency_amount = result.contingency_amount
    model.total_costs = result.total_costs
    model.final_gp = result.final_gp
    model.gp_percent = result.gp_percent
    return result


def notify(
    outbox: OutboxService,
    event: str,
    entity_type: str,
    entity_id: UUID,
    message: str,
    recipient_role: str | None = None,
    suffix: str | None = None,
) -> OutboxMessage:
    """Queue a notification in the caller's transaction, keyed by event and entity."""
    return outbox.enqueue(
        NOTIFICATION_TOPIC,
        NotificationPayload(
            event=event,
            entity_type=entity_type,
            entity_id=str(entity_id),
            message=message,
            recipient_role=recipient_role,
        ),
        generate_idempotency_key(event, entity_type, entity_id, suffix),
    )
