"""
ORM-Level Append-Only Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The audit trail, the system event log and governance approval history are
compliance records.  Once written they are never edited or removed; a
correction is a new row.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that raise ImmutabilityViolationError, aborting the
flush before any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _reject_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _reject_delete() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                 | Layer    | When Immutable
-----------------------|----------|------------------------
AuditTrailEntry        | kernel   | ALWAYS (from creation)
SystemEventLog         | kernel   | ALWAYS (from creation)
ApprovalHistoryEntry   | modules  | ALWAYS (from creation)

Module models opt in with the ``@append_only("EntityType")`` class
decorator so the kernel never imports module code.

===============================================================================
USAGE
===============================================================================

    from dealflow_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once, after models are imported

    # In tests that must bypass the rules:
    unregister_immutability_listeners()
"""

from sqlalchemy import event

from dealflow_kernel.exceptions import ImmutabilityViolationError
from dealflow_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# model class -> entity type label
_APPEND_ONLY_MODELS: dict[type, str] = {}


def append_only(entity_type: str):
    """Class decorator marking an ORM model as append-only."""

    def decorator(cls: type) -> type:
        _APPEND_ONLY_MODELS[cls] = entity_type
        return cls

    return decorator


def _entity_type_of(target) -> str:
    for cls, label in _APPEND_ONLY_MODELS.items():
        if isinstance(target, cls):
            return label
    return type(target).__name__


def _reject_update(mapper, connection, target):
    entity_type = _entity_type_of(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} records are append-only and cannot be modified",
    )


def _reject_delete(mapper, connection, target):
    entity_type = _entity_type_of(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} records cannot be deleted",
    )


def _kernel_models() -> None:
    from dealflow_kernel.models.ledger import AuditTrailEntry, SystemEventLog

    _APPEND_ONLY_MODELS.setdefault(AuditTrailEntry, "AuditTrailEntry")
    _APPEND_ONLY_MODELS.setdefault(SystemEventLog, "SystemEventLog")


def register_immutability_listeners() -> None:
    """
    Register before_update/before_delete listeners on every append-only model.

    Idempotent.  Call after all models are imported and before any
    database operation begins.
    """
    _kernel_models()
    for model in _APPEND_ONLY_MODELS:
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    for model in _APPEND_ONLY_MODELS:
        if event.contains(model, "before_update", _reject_update):
            event.remove(model, "before_update", _reject_update)
        if event.contains(model, "before_delete", _reject_delete):
            event.remove(model, "before_delete", _reject_delete)
