"""
End-to-end flows through the container: deal margin, vendor withholding,
receivable aging, program invoicing and duplicate detection.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from dealflow_engines.aging import AgingBucket, ReceivableStatus
from dealflow_engines.margin import MarginThresholdStatus
from dealflow_engines.withholding import ComplianceStatus, TdsSection
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_modules.governance.models import FraudAlertType
from dealflow_modules.procurement.models import LinkedSourceType

SE = Role.SALES_EXECUTIVE.value
OM = Role.OPERATIONS_MANAGER.value
FM = Role.FINANCE_MANAGER.value
DIRECTOR = Role.DIRECTOR.value

COSTS = {
    "trainer_cost": Decimal("400000"),
    "lab_cost": Decimal("150000"),
    "logistics_cost": Decimal("60000"),
    "content_cost": Decimal("50000"),
    "contingency_cost": Decimal("20000"),
    "travel_cost": Decimal("80000"),
    "marketing_cost": Decimal("40000"),
    "other_cost": Decimal("20000"),
}


@pytest.fixture
def delivered_program(container, ops_manager_id):
    program = container.delivery.create_program(
        "Kubernetes Fundamentals", "Acme Corp", ops_manager_id, OM,
        costs={"tov": Decimal("1000000")},
    )
    return container.delivery.record_sign_off(program.id, "client", ops_manager_id, OM)


def test_deal_margin_at_threshold(container, sales_exec_id, director_id):
    deal = container.sales.create_deal(
        "Acme Corp", "Cloud Bootcamp", Decimal("1000000"), sales_exec_id, SE, costs=COSTS
    )

    assert deal.total_cost == Decimal("820000")
    assert deal.contribution_margin == Decimal("180000")
    assert deal.gross_margin_percent == Decimal("18.0000")
    assert deal.margin_threshold_status == MarginThresholdStatus.AT

    container.sales.approve_deal(deal.id, director_id, DIRECTOR)
    stub = container.procurement.find_stub_for_source(LinkedSourceType.DEAL, deal.id)
    assert stub is not None
    assert stub.vendor_name == "Pending Assignment"


def test_professional_vendor_without_pan(container, finance_manager_id):
    vendor = container.payables.create_vendor(
        "Ravi Kumar", "Individual", finance_manager_id, FM,
        default_nature_of_service="Professional Services",
    )
    payable = container.payables.create_payable(
        finance_manager_id, FM, vendor_id=vendor.id, amount=Decimal("250000"),
    )
    record = container.payables.tax_record_for_payable(payable.id)

    assert record.tds_section == TdsSection.PROFESSIONAL
    assert record.applicable_tds_percent == Decimal("20")
    assert record.tds_amount == Decimal("50000")
    assert record.net_payable_amount == Decimal("200000")
    assert record.compliance_status == ComplianceStatus.PENDING_PAN
    assert payable.outstanding_amount == Decimal("200000")


def test_program_invoice_opens_receivable(
    container, delivered_program, finance_manager_id
):
    assert container.delivery.get_program(delivered_program.id).invoice_eligible

    invoice = container.receivables.create_invoice_for_program(
        delivered_program.id, finance_manager_id, FM
    )
    assert invoice.tax_amount == Decimal("180000")
    assert invoice.total_amount == Decimal("1180000")

    receivable = container.receivables.receivable_for_invoice(invoice.id)
    assert receivable.outstanding_amount == Decimal("1180000")
    assert receivable.due_date == date(2024, 1, 31)


def test_overdue_receivable_ages(container, delivered_program, finance_manager_id):
    invoice = container.receivables.create_invoice_for_program(
        delivered_program.id, finance_manager_id, FM
    )
    receivable = container.receivables.receivable_for_invoice(invoice.id)

    aged = container.receivables.refresh_aging(
        receivable.id, as_of=receivable.due_date + timedelta(days=45)
    )
    assert aged.aging_bucket == AgingBucket.DAYS_31_60
    assert aged.status == ReceivableStatus.OVERDUE


def test_repeat_invoice_flagged_as_duplicate(
    container, deterministic_clock, delivered_program, finance_manager_id
):
    first = container.receivables.create_invoice_for_program(
        delivered_program.id, finance_manager_id, FM
    )
    deterministic_clock.advance_days(1)
    second = container.receivables.create_invoice_for_program(
        delivered_program.id, finance_manager_id, FM
    )

    assert not first.duplicate_flag
    assert second.duplicate_flag

    governance = container.governance.for_program(delivered_program.id)
    assert governance.fraud_alert_type == FraudAlertType.DUPLICATE_INVOICE
    assert governance.duplicate_detection_log.similar_invoice_ids == (str(first.id),)

    compliance = container.ledger.events_for(event_type=SystemEventType.COMPLIANCE_UPDATED)
    assert len(compliance) == 1
    # Both invoices still get their receivable
    assert container.receivables.outstanding_total() == Decimal("2360000")
