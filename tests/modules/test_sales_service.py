"""SalesService: opportunities, deals with derived margin, deal requests."""

from decimal import Decimal
from uuid import uuid4

import pytest

from dealflow_engines.margin import MarginThresholdStatus
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.exceptions import (
    EntityNotFoundError,
    InvalidAmountError,
    InvalidEnumValueError,
    InvalidTransitionError,
    MissingFieldError,
    TransitionReasonRequiredError,
    UnauthorizedTransitionError,
)
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_modules.governance.models import ApprovalDecision
from dealflow_modules.procurement.models import LinkedSourceType
from dealflow_modules.sales.models import (
    AcknowledgementStatus,
    DealApprovalStatus,
    OpportunityStatus,
)

SE = Role.SALES_EXECUTIVE.value
SM = Role.SALES_MANAGER.value
BH = Role.BUSINESS_HEAD.value
DIRECTOR = Role.DIRECTOR.value
OM = Role.OPERATIONS_MANAGER.value


@pytest.fixture
def opportunity(container, sales_exec_id):
    return container.sales.create_opportunity(
        client_name="Globex",
        actor_id=sales_exec_id,
        actor_role=SE,
        course_name="Data Engineering",
        costs={
            "tov": Decimal("500000"),
            "trainer_po_value": Decimal("200000"),
            "marketing_charges_percent": Decimal("10"),
            "contingency_amount": Decimal("10000"),
        },
    )


class TestOpportunities:

    def test_create_derives_gross_profit(self, opportunity):
        assert opportunity.status == OpportunityStatus.NEW
        assert opportunity.opportunity_code == "GKT24CH01001"
        assert opportunity.marketing_charges_amount == Decimal("50000")
        assert opportunity.total_costs == Decimal("260000")
        assert opportunity.final_gp == Decimal("240000")
        assert opportunity.gp_percent == Decimal("48.0000")

    def test_create_requires_sales_role(self, container, finance_manager_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.create_opportunity(
                "Globex", finance_manager_id, Role.FINANCE_MANAGER.value
            )

    def test_blank_client_rejected(self, container, sales_exec_id):
        with pytest.raises(MissingFieldError):
            container.sales.create_opportunity("  ", sales_exec_id, SE)

    def test_update_costs_rederives(self, container, opportunity, sales_exec_id):
        updated = container.sales.update_opportunity_costs(
            opportunity.id,
            {"trainer_po_value": Decimal("300000")},
            sales_exec_id,
            SE,
        )
        assert updated.final_gp == Decimal("140000")
        assert updated.gp_percent == Decimal("28.0000")

    def test_negative_cost_rejected(self, container, opportunity, sales_exec_id):
        with pytest.raises(InvalidAmountError):
            container.sales.update_opportunity_costs(
                opportunity.id, {"lab_po_value": Decimal("-1")}, sales_exec_id, SE
            )

    def test_qualify_and_send_to_delivery(self, container, opportunity, sales_manager_id):
        qualified = container.sales.qualify_opportunity(opportunity.id, sales_manager_id, SM)
        assert qualified.status == OpportunityStatus.QUALIFIED
        assert qualified.qualified_by_id == sales_manager_id

        sent = container.sales.send_opportunity_to_delivery(opportunity.id, sales_manager_id, SM)
        assert sent.status == OpportunityStatus.SENT_TO_DELIVERY

        notifications = container.outbox.pending("notification")
        events = [m.payload["event"] for m in notifications]
        assert "opportunity_qualified" in events
        assert "opportunity_sent_to_delivery" in events

    def test_qualify_requires_sales_manager(self, container, opportunity, sales_exec_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.qualify_opportunity(opportunity.id, sales_exec_id, SE)
        assert container.sales.get_opportunity(opportunity.id).status == OpportunityStatus.NEW

    def test_mark_lost_requires_reason(self, container, opportunity, sales_manager_id):
        with pytest.raises(TransitionReasonRequiredError):
            container.sales.mark_opportunity_lost(opportunity.id, " ", sales_manager_id, SM)

        lost = container.sales.mark_opportunity_lost(
            opportunity.id, "Budget cut", sales_manager_id, SM
        )
        assert lost.status == OpportunityStatus.LOST
        assert lost.lost_reason == "Budget cut"

    def test_new_opportunity_cannot_convert(self, container, opportunity, sales_exec_id):
        with pytest.raises(InvalidTransitionError):
            container.sales.convert_opportunity_to_deal(
                opportunity.id, "Data Eng Cohort", sales_exec_id, SE
            )
        assert container.sales.list_deals() == []

    def test_convert_creates_deal_and_back_reference(
        self, container, opportunity, sales_manager_id, sales_exec_id
    ):
        container.sales.qualify_opportunity(opportunity.id, sales_manager_id, SM)
        deal = container.sales.convert_opportunity_to_deal(
            opportunity.id, "Data Eng Cohort", sales_exec_id, SE
        )

        assert deal.client_name == "Globex"
        assert deal.total_order_value == Decimal("500000")
        assert deal.opportunity_id == opportunity.id

        converted = container.sales.get_opportunity(opportunity.id)
        assert converted.status == OpportunityStatus.CONVERTED
        assert converted.converted_deal_id == deal.id
        assert converted.converted_at is not None

        events = container.ledger.events_for(
            "Opportunity", opportunity.id, SystemEventType.OPPORTUNITY_CONVERTED
        )
        assert len(events) == 1

    def test_unknown_opportunity(self, container):
        with pytest.raises(EntityNotFoundError):
            container.sales.get_opportunity(uuid4())


class TestDeals:

    def test_create_derives_margin(self, pending_deal):
        assert pending_deal.deal_code == "DEAL-2024-0001"
        assert pending_deal.approval_status == DealApprovalStatus.PENDING
        assert pending_deal.total_cost == Decimal("820000")
        assert pending_deal.contribution_margin == Decimal("180000")
        assert pending_deal.break_even_value == Decimal("820000")
        assert pending_deal.gross_margin_percent == Decimal("18.0000")
        assert pending_deal.margin_threshold_status == MarginThresholdStatus.AT

    def test_create_writes_audit_event_and_governance(self, container, pending_deal):
        trail = container.ledger.trail_for("Deal", pending_deal.id)
        assert [e.action for e in trail] == ["deal_created"]

        events = container.ledger.events_for("Deal", pending_deal.id)
        assert [e.event_type for e in events] == [SystemEventType.DEAL_CREATED.value]

        record = container.governance.for_deal(pending_deal.id)
        assert record is not None
        assert not record.director_approval_required
        assert not record.loss_making_project_flag

    def test_below_threshold_needs_director(self, container, sales_exec_id):
        deal = container.sales.create_deal(
            "Initech", "Skinny Deal", Decimal("100000"), sales_exec_id, SE,
            costs={"trainer_cost": Decimal("95000")},
        )
        assert deal.margin_threshold_status == MarginThresholdStatus.BELOW
        record = container.governance.for_deal(deal.id)
        assert record.loss_making_project_flag
        assert record.director_approval_required

    def test_zero_order_value(self, container, sales_exec_id):
        deal = container.sales.create_deal(
            "Initech", "Pilot", Decimal("0"), sales_exec_id, SE,
        )
        assert deal.gross_margin_percent == Decimal("0")
        assert deal.margin_threshold_status == MarginThresholdStatus.BELOW

    def test_invalid_deal_type(self, container, sales_exec_id):
        with pytest.raises(InvalidEnumValueError):
            container.sales.create_deal(
                "Initech", "Pilot", Decimal("1000"), sales_exec_id, SE, deal_type="Retail",
            )

    def test_finance_cannot_create_deal(self, container, finance_manager_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.create_deal(
                "Initech", "Pilot", Decimal("1000"),
                finance_manager_id, Role.FINANCE_MANAGER.value,
            )

    def test_update_costs_rederives_and_reevaluates(
        self, container, pending_deal, sales_exec_id
    ):
        updated = container.sales.update_deal_costs(
            pending_deal.id, sales_exec_id, SE,
            costs={"trainer_cost": Decimal("600000")},
        )
        assert updated.total_cost == Decimal("1020000")
        assert updated.contribution_margin == Decimal("-20000")
        assert updated.margin_threshold_status == MarginThresholdStatus.BELOW
        assert container.governance.for_deal(pending_deal.id).loss_making_project_flag

    def test_approve(self, container, approved_deal, director_id):
        assert approved_deal.approval_status == DealApprovalStatus.APPROVED
        assert approved_deal.approved_by_id == director_id
        assert approved_deal.approved_at == container.clock.now()

        record = container.governance.for_deal(approved_deal.id)
        assert [h.decision for h in record.approval_history] == [ApprovalDecision.APPROVED]

        actions = [e.action for e in container.ledger.trail_for("Deal", approved_deal.id)]
        assert actions == ["deal_created", "deal_approve"]
        stub = container.procurement.find_stub_for_source(LinkedSourceType.DEAL, approved_deal.id)
        assert stub is not None

    def test_approve_requires_approver_role(self, container, pending_deal, sales_exec_id):
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.approve_deal(pending_deal.id, sales_exec_id, SE)
        assert container.sales.get_deal(pending_deal.id).approval_status == DealApprovalStatus.PENDING
        assert container.procurement.find_stub_for_source(
            LinkedSourceType.DEAL, pending_deal.id
        ) is None

    def test_reapproval_still_requires_approver_role(
        self, container, approved_deal, sales_exec_id
    ):
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.approve_deal(approved_deal.id, sales_exec_id, SE)
        stub = container.procurement.find_stub_for_source(LinkedSourceType.DEAL, approved_deal.id)
        assert stub.created_by_id != sales_exec_id

    def test_rejected_deal_cannot_be_approved(
        self, container, pending_deal, business_head_id, director_id
    ):
        rejected = container.sales.reject_deal(
            pending_deal.id, business_head_id, BH, reason="Margin too thin"
        )
        assert rejected.approval_status == DealApprovalStatus.REJECTED
        assert rejected.rejection_reason == "Margin too thin"

        with pytest.raises(InvalidTransitionError):
            container.sales.approve_deal(pending_deal.id, director_id, DIRECTOR)

        history = container.governance.for_deal(pending_deal.id).approval_history
        assert [h.decision for h in history] == [ApprovalDecision.REJECTED]

    def test_list_deals_filters_by_status(self, container, approved_deal, sales_exec_id):
        container.sales.create_deal("Initech", "Second", Decimal("1000"), sales_exec_id, SE)
        assert [d.id for d in container.sales.list_deals("Approved")] == [approved_deal.id]
        assert len(container.sales.list_deals()) == 2
        with pytest.raises(InvalidEnumValueError):
            container.sales.list_deals("Closed")


class TestDealRequests:

    @pytest.mark.parametrize(
        "revenue,expected",
        [
            (Decimal("50000"), MarginThresholdStatus.BELOW),
            (Decimal("300000"), MarginThresholdStatus.AT),
            (Decimal("600000"), MarginThresholdStatus.ABOVE),
        ],
    )
    def test_margin_status_from_revenue(self, container, business_head_id, revenue, expected):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", revenue, business_head_id, BH
        )
        assert request.margin_status == expected
        assert request.request_code == "DR-2024-0001"

    def test_explicit_margin_status_wins(self, container, business_head_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("50000"), business_head_id, BH,
            margin_status="Above Threshold",
        )
        assert request.margin_status == MarginThresholdStatus.ABOVE

    def test_approve_creates_po_stub(self, container, business_head_id, director_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        approved = container.sales.approve_deal_request(request.id, director_id, DIRECTOR)
        assert approved.status == DealApprovalStatus.APPROVED
        stub = container.procurement.find_stub_for_source(
            LinkedSourceType.DEAL_REQUEST, request.id
        )
        assert stub is not None

    def test_reapproval_still_requires_approver_role(
        self, container, business_head_id, director_id, sales_exec_id
    ):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        container.sales.approve_deal_request(request.id, director_id, DIRECTOR)
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.approve_deal_request(request.id, sales_exec_id, SE)

    def test_reject_requires_reason(self, container, business_head_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        with pytest.raises(TransitionReasonRequiredError):
            container.sales.reject_deal_request(request.id, "", business_head_id, BH)
        rejected = container.sales.reject_deal_request(
            request.id, "No trainer capacity", business_head_id, BH
        )
        assert rejected.status == DealApprovalStatus.REJECTED

    def test_acknowledge(self, container, business_head_id, ops_manager_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        acked = container.sales.acknowledge_deal_request(request.id, ops_manager_id, OM)
        assert acked.acknowledgement_status == AcknowledgementStatus.ACKNOWLEDGED
        assert acked.acknowledged_by_id == ops_manager_id

        events = container.ledger.events_for(
            "DealRequest", request.id, SystemEventType.DEAL_ACKNOWLEDGED
        )
        assert [e.action for e in events] == ["Acknowledged deal"]

    def test_clarification_request(self, container, business_head_id, ops_manager_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        acked = container.sales.acknowledge_deal_request(
            request.id, ops_manager_id, OM, clarification="  Which city?  "
        )
        assert acked.acknowledgement_status == AcknowledgementStatus.CLARIFICATION_REQUESTED
        assert acked.clarification_notes == "Which city?"
        assert acked.acknowledged_at is None

    def test_only_operations_acknowledges(self, container, business_head_id):
        request = container.sales.create_deal_request(
            "Umbrella", "AI Literacy", Decimal("300000"), business_head_id, BH
        )
        with pytest.raises(UnauthorizedTransitionError):
            container.sales.acknowledge_deal_request(request.id, business_head_id, BH)
