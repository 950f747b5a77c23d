"""Procurement module: purchase orders and PO status stubs."""

from dealflow_modules.procurement.models import (
    CostType,
    LinkedSourceType,
    POStatus,
    POStatusStub,
    PurchaseOrder,
)
from dealflow_modules.procurement.service import ProcurementService

__all__ = [
    "CostType",
    "LinkedSourceType",
    "POStatus",
    "POStatusStub",
    "ProcurementService",
    "PurchaseOrder",
]
