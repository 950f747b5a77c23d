"""Kernel ORM models: append-only ledger and outbox."""

from dealflow_kernel.models.ledger import AuditTrailEntry, SystemEventLog, SystemEventType
from dealflow_kernel.models.outbox import OutboxMessage, OutboxStatus

__all__ = [
    "AuditTrailEntry",
    "SystemEventLog",
    "SystemEventType",
    "OutboxMessage",
    "OutboxStatus",
]
