"""Kernel services (write side).  All of them flush; none of them commit."""

from dealflow_kernel.services.base import BaseService
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_kernel.services.outbox_service import DispatchResult, OutboxService
from dealflow_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BaseService",
    "DispatchResult",
    "IdentifierService",
    "LedgerService",
    "OutboxService",
    "SequenceCounter",
    "SequenceService",
]
