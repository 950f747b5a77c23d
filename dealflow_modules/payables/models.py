"""
Payables Domain Models (``dealflow_modules.payables.models``).

Vendors, vendor payment obligations and the TDS (withholding) record
attached 1:1 to a payable.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from dealflow_engines.payables import PayableStatus
from dealflow_engines.withholding import (
    ComplianceStatus,
    NatureOfService,
    PayeeType,
    TdsSection,
    ThresholdStatus,
    VendorType,
)


class PaymentMode(str, Enum):
    NEFT = "NEFT"
    RTGS = "RTGS"
    IMPS = "IMPS"
    UPI = "UPI"
    CHEQUE = "Cheque"
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"


class ReconciliationStatus(str, Enum):
    PENDING = "Pending"
    RECONCILED = "Reconciled"
    DISCREPANCY = "Discrepancy"


@dataclass(frozen=True)
class Vendor:
    id: UUID
    vendor_name: str
    vendor_type: VendorType
    pan_number: str | None = None
    gst_number: str | None = None
    default_nature_of_service: NatureOfService | None = None

    @property
    def pan_present(self) -> bool:
        return bool(self.pan_number)


@dataclass(frozen=True)
class Payable:
    """
    A vendor payment obligation.

    ``outstanding_amount`` is always
    ``adjusted_payable_amount - tds_amount - paid_amount``.
    """
    id: UUID
    vendor_payout_reference: str
    vendor_name: str
    adjusted_payable_amount: Decimal
    tds_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    status: PayableStatus
    due_date: date
    payment_terms: int
    payment_mode: PaymentMode
    reconciliation_status: ReconciliationStatus
    hold_flag: bool
    release_flag: bool
    purchase_order_id: UUID | None = None
    vendor_id: UUID | None = None
    approved_cost: Decimal | None = None
    nature_of_service: NatureOfService | None = None
    description: str | None = None
    vendor_payout_date: date | None = None


@dataclass(frozen=True)
class TaxRecord:
    """TDS computed for one payable.  ``net_payable_amount == payment_amount - tds_amount``."""
    id: UUID
    payable_id: UUID
    vendor_id: UUID
    vendor_type: VendorType
    nature_of_service: NatureOfService
    tds_section: TdsSection
    payee_type: PayeeType
    applicable_tds_percent: Decimal
    payment_amount: Decimal
    threshold_status: ThresholdStatus
    tds_amount: Decimal
    net_payable_amount: Decimal
    pan_available: bool
    pan_absent_percent: Decimal
    compliance_status: ComplianceStatus
    director_override: bool
    director_override_by_id: UUID | None = None
    director_override_at: datetime | None = None
    calculated_at: datetime | None = None
