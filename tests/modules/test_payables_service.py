"""PayablesService: vendors, payables, TDS and payments."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from dealflow_engines.payables import PayableStatus
from dealflow_engines.withholding import ComplianceStatus, TdsSection, ThresholdStatus
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.exceptions import (
    EntityNotFoundError,
    InvalidAmountError,
    InvalidEnumValueError,
    InvalidTransitionError,
    MissingFieldError,
    UnauthorizedTransitionError,
)
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_modules.payables.models import ReconciliationStatus
from dealflow_modules.payables.service import vendor_yearly_total

FM = Role.FINANCE_MANAGER.value
OM = Role.OPERATIONS_MANAGER.value
DIRECTOR = Role.DIRECTOR.value


@pytest.fixture
def professional_payable(container, individual_vendor, finance_manager_id):
    return container.payables.create_payable(
        actor_id=finance_manager_id,
        actor_role=FM,
        vendor_id=individual_vendor.id,
        amount=Decimal("250000"),
    )


class TestVendors:

    def test_create(self, individual_vendor):
        assert individual_vendor.vendor_type.value == "Individual"
        assert individual_vendor.pan_number is None
        assert individual_vendor.default_nature_of_service.value == "Professional Services"

    def test_blank_pan_is_absent(self, container, ops_manager_id):
        vendor = container.payables.create_vendor(
            "Blank Pan Co", "Firm", ops_manager_id, OM, pan_number="   "
        )
        assert vendor.pan_number is None

    def test_unknown_vendor_type(self, container, finance_manager_id):
        with pytest.raises(InvalidEnumValueError):
            container.payables.create_vendor("X", "Trust", finance_manager_id, FM)

    def test_sales_cannot_maintain_vendors(self, container, sales_exec_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.payables.create_vendor(
                "X", "Company", sales_exec_id, Role.SALES_EXECUTIVE.value
            )


class TestPayableCreation:

    def test_direct_entry_applies_withholding(self, container, professional_payable):
        assert professional_payable.vendor_payout_reference == "VPR-2024-0001"
        assert professional_payable.adjusted_payable_amount == Decimal("250000")
        assert professional_payable.tds_amount == Decimal("50000")
        assert professional_payable.outstanding_amount == Decimal("200000")
        assert professional_payable.status == PayableStatus.PENDING
        assert professional_payable.due_date == date(2024, 1, 31)

        record = container.payables.tax_record_for_payable(professional_payable.id)
        assert record.tds_section == TdsSection.PROFESSIONAL
        assert record.applicable_tds_percent == Decimal("20")
        assert record.net_payable_amount == Decimal("200000")
        assert record.compliance_status == ComplianceStatus.PENDING_PAN

        events = container.ledger.events_for(
            "Payable", professional_payable.id, SystemEventType.TDS_CALCULATED
        )
        assert len(events) == 1

    def test_from_purchase_order(
        self, container, approved_deal, company_vendor, ops_manager_id, finance_manager_id
    ):
        po = container.procurement.create_purchase_order(
            approved_deal.id, company_vendor.vendor_name, Decimal("150000"),
            ops_manager_id, OM, cost_type="Lab", vendor_id=company_vendor.id,
        )
        payable = container.payables.create_payable(
            finance_manager_id, FM, purchase_order_id=po.id, amount=Decimal("1"),
        )
        assert payable.purchase_order_id == po.id
        assert payable.vendor_id == company_vendor.id
        assert payable.approved_cost == Decimal("150000")
        assert payable.adjusted_payable_amount == Decimal("150000")
        # Contractor, company, above the single-payment threshold: 2%
        assert payable.tds_amount == Decimal("3000")
        assert payable.outstanding_amount == Decimal("147000")

    def test_name_only_entry_skips_withholding(self, container, finance_manager_id, captured_logs):
        payable = container.payables.create_payable(
            finance_manager_id, FM, vendor_name="Walk-in Caterer", amount=Decimal("8000"),
        )
        assert payable.vendor_id is None
        assert payable.tds_amount == Decimal("0")
        assert payable.outstanding_amount == Decimal("8000")
        assert container.payables.tax_record_for_payable(payable.id) is None
        assert any(r["message"] == "withholding_skipped_no_vendor" for r in captured_logs())

    def test_needs_vendor(self, container, finance_manager_id):
        with pytest.raises(MissingFieldError):
            container.payables.create_payable(finance_manager_id, FM, amount=Decimal("10"))

    def test_needs_positive_amount(self, container, individual_vendor, finance_manager_id):
        with pytest.raises(InvalidAmountError):
            container.payables.create_payable(
                finance_manager_id, FM, vendor_id=individual_vendor.id, amount=Decimal("0"),
            )

    def test_custom_terms(self, container, individual_vendor, finance_manager_id):
        payable = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=individual_vendor.id,
            amount=Decimal("1000"), payment_terms=45, payment_mode="UPI",
        )
        assert payable.due_date == date(2024, 2, 15)
        assert payable.payment_mode.value == "UPI"


class TestYearlyThreshold:

    def test_cumulative_contractor_threshold(self, container, company_vendor, finance_manager_id):
        small = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=company_vendor.id, amount=Decimal("20000"),
        )
        assert container.payables.tax_record_for_payable(small.id).threshold_status == (
            ThresholdStatus.BELOW
        )
        assert small.tds_amount == Decimal("0")

        container.payables.create_payable(
            finance_manager_id, FM, vendor_id=company_vendor.id, amount=Decimal("70000"),
        )
        # Below the single-payment threshold, but the year now totals 110000
        third = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=company_vendor.id, amount=Decimal("20000"),
        )
        record = container.payables.tax_record_for_payable(third.id)
        assert record.threshold_status == ThresholdStatus.ABOVE
        assert third.tds_amount == Decimal("400")

    def test_yearly_total_excludes_cancelled_and_self(
        self, container, session, company_vendor, finance_manager_id
    ):
        kept = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=company_vendor.id, amount=Decimal("20000"),
        )
        dropped = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=company_vendor.id, amount=Decimal("5000"),
        )
        container.payables.cancel_payable(dropped.id, finance_manager_id, FM, reason="Duplicate")

        assert vendor_yearly_total(session, company_vendor.id, 2024) == Decimal("20000")
        assert vendor_yearly_total(
            session, company_vendor.id, 2024, exclude_payable_id=kept.id
        ) == Decimal("0")
        assert vendor_yearly_total(session, company_vendor.id, 2023) == Decimal("0")


class TestLifecycle:

    def test_hold_release_pay(self, container, professional_payable, finance_manager_id):
        held = container.payables.hold_payable(professional_payable.id, finance_manager_id, FM)
        assert held.status == PayableStatus.ON_HOLD
        assert held.hold_flag

        released = container.payables.release_payable(
            professional_payable.id, finance_manager_id, FM
        )
        assert released.status == PayableStatus.RELEASED
        assert released.release_flag and not released.hold_flag

        partial = container.payables.record_payment(
            professional_payable.id, Decimal("50000"), finance_manager_id, FM
        )
        assert partial.status == PayableStatus.RELEASED
        assert partial.outstanding_amount == Decimal("150000")

        paid = container.payables.record_payment(
            professional_payable.id, Decimal("150000"), finance_manager_id, FM,
            payment_mode="RTGS",
        )
        assert paid.status == PayableStatus.PAID
        assert paid.outstanding_amount == Decimal("0")
        assert paid.paid_amount == Decimal("200000")
        assert paid.vendor_payout_date == date(2024, 1, 1)

        events = container.ledger.events_for(
            "Payable", professional_payable.id, SystemEventType.PAYMENT_PROCESSED
        )
        assert len(events) == 2

    def test_payment_requires_release(self, container, professional_payable, finance_manager_id):
        with pytest.raises(InvalidTransitionError):
            container.payables.record_payment(
                professional_payable.id, Decimal("10"), finance_manager_id, FM
            )
        assert container.payables.get_payable(professional_payable.id).paid_amount == Decimal("0")

    def test_overpayment_rejected(self, container, professional_payable, finance_manager_id):
        container.payables.release_payable(professional_payable.id, finance_manager_id, FM)
        with pytest.raises(InvalidAmountError):
            container.payables.record_payment(
                professional_payable.id, Decimal("200000.01"), finance_manager_id, FM
            )

    def test_cancelled_is_terminal(self, container, professional_payable, finance_manager_id):
        cancelled = container.payables.cancel_payable(
            professional_payable.id, finance_manager_id, FM
        )
        assert cancelled.status == PayableStatus.CANCELLED
        with pytest.raises(InvalidTransitionError):
            container.payables.release_payable(professional_payable.id, finance_manager_id, FM)

    def test_operations_cannot_release(self, container, professional_payable, ops_manager_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.payables.release_payable(professional_payable.id, ops_manager_id, OM)

    def test_reconciliation_status(self, container, professional_payable, finance_manager_id):
        updated = container.payables.set_reconciliation_status(
            professional_payable.id, "Reconciled", finance_manager_id, FM
        )
        assert updated.reconciliation_status == ReconciliationStatus.RECONCILED
        with pytest.raises(InvalidEnumValueError):
            container.payables.set_reconciliation_status(
                professional_payable.id, "Lost", finance_manager_id, FM
            )


class TestWithholdingRecalculation:

    def test_recalculate_with_new_nature(self, container, professional_payable, finance_manager_id):
        record = container.payables.calculate_withholding(
            professional_payable.id, finance_manager_id, FM, nature_of_service="Technical Services"
        )
        # PAN still absent, so the 20% floor applies over the 2% technical rate
        assert record.nature_of_service.value == "Technical Services"
        assert record.applicable_tds_percent == Decimal("20")
        assert container.payables.get_payable(professional_payable.id).tds_amount == Decimal("50000")

    def test_director_override(self, container, professional_payable, director_id):
        record = container.payables.tax_record_for_payable(professional_payable.id)
        overridden = container.payables.apply_director_override(record.id, director_id, DIRECTOR)

        assert overridden.director_override
        assert overridden.director_override_by_id == director_id
        assert overridden.compliance_status == ComplianceStatus.DIRECTOR_OVERRIDE
        assert overridden.applicable_tds_percent == Decimal("10")
        assert overridden.tds_amount == Decimal("25000")

        payable = container.payables.get_payable(professional_payable.id)
        assert payable.tds_amount == Decimal("25000")
        assert payable.outstanding_amount == Decimal("225000")

        trail = container.ledger.trail_for("TaxEngine", record.id)
        assert [e.action for e in trail] == ["withholding_director_override"]

    def test_override_survives_recalculation(
        self, container, professional_payable, director_id, finance_manager_id
    ):
        record = container.payables.tax_record_for_payable(professional_payable.id)
        container.payables.apply_director_override(record.id, director_id, DIRECTOR)
        again = container.payables.calculate_withholding(
            professional_payable.id, finance_manager_id, FM
        )
        assert again.compliance_status == ComplianceStatus.DIRECTOR_OVERRIDE

    def test_only_director_overrides(self, container, professional_payable, finance_manager_id):
        record = container.payables.tax_record_for_payable(professional_payable.id)
        with pytest.raises(UnauthorizedTransitionError):
            container.payables.apply_director_override(record.id, finance_manager_id, FM)


@pytest.fixture
def pan_vendor(container, finance_manager_id):
    return container.payables.create_vendor(
        vendor_name="Meera Iyer",
        vendor_type="Individual",
        actor_id=finance_manager_id,
        actor_role=FM,
        pan_number="ABCPI1234K",
        default_nature_of_service="Professional Services",
    )


class TestWithholdingAfterPayment:
    """A later payable can push the yearly total over the threshold."""

    def _released(self, container, vendor, finance_manager_id):
        payable = container.payables.create_payable(
            finance_manager_id, FM, vendor_id=vendor.id, amount=Decimal("40000"),
        )
        assert payable.tds_amount == Decimal("0")
        container.payables.release_payable(payable.id, finance_manager_id, FM)
        return payable

    def test_paid_payable_is_not_recomputed(
        self, container, pan_vendor, finance_manager_id, director_id
    ):
        first = self._released(container, pan_vendor, finance_manager_id)
        container.payables.record_payment(first.id, Decimal("40000"), finance_manager_id, FM)
        container.payables.create_payable(
            finance_manager_id, FM, vendor_id=pan_vendor.id, amount=Decimal("40000"),
        )

        with pytest.raises(InvalidTransitionError):
            container.payables.calculate_withholding(first.id, finance_manager_id, FM)
        record = container.payables.tax_record_for_payable(first.id)
        with pytest.raises(InvalidTransitionError):
            container.payables.apply_director_override(record.id, director_id, DIRECTOR)

        payable = container.payables.get_payable(first.id)
        assert payable.status == PayableStatus.PAID
        assert payable.outstanding_amount == Decimal("0")
        assert payable.tds_amount == Decimal("0")

    def test_recompute_cannot_exceed_unpaid_balance(
        self, container, pan_vendor, finance_manager_id
    ):
        first = self._released(container, pan_vendor, finance_manager_id)
        container.payables.record_payment(first.id, Decimal("38000"), finance_manager_id, FM)
        container.payables.create_payable(
            finance_manager_id, FM, vendor_id=pan_vendor.id, amount=Decimal("40000"),
        )

        # 10% of 40000 is more than the 2000 still unpaid
        with pytest.raises(InvalidAmountError):
            container.payables.calculate_withholding(first.id, finance_manager_id, FM)

        payable = container.payables.get_payable(first.id)
        assert payable.status == PayableStatus.RELEASED
        assert payable.outstanding_amount == Decimal("2000")
        assert payable.tds_amount == Decimal("0")

    def test_partly_paid_recompute_within_balance(
        self, container, pan_vendor, finance_manager_id
    ):
        first = self._released(container, pan_vendor, finance_manager_id)
        container.payables.record_payment(first.id, Decimal("10000"), finance_manager_id, FM)
        container.payables.create_payable(
            finance_manager_id, FM, vendor_id=pan_vendor.id, amount=Decimal("40000"),
        )

        record = container.payables.calculate_withholding(first.id, finance_manager_id, FM)
        assert record.threshold_status == ThresholdStatus.ABOVE
        assert record.tds_amount == Decimal("4000")

        payable = container.payables.get_payable(first.id)
        assert payable.status == PayableStatus.RELEASED
        assert payable.outstanding_amount == Decimal("26000")

class TestLookups:

    def test_get_by_id(self, container, individual_vendor, professional_payable):
        assert container.payables.get_vendor(individual_vendor.id).vendor_name == "Ravi Kumar"
        record = container.payables.tax_record_for_payable(professional_payable.id)
        assert container.payables.get_tax_record(record.id).payable_id == professional_payable.id

    def test_unknown_ids(self, container):
        with pytest.raises(EntityNotFoundError):
            container.payables.get_vendor(uuid4())
        with pytest.raises(EntityNotFoundError):
            container.payables.get_tax_record(uuid4())
