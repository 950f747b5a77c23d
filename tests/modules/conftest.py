"""
Fixtures shared by the module service tests.

All fixtures are opt-in; each builds on the ``container`` fixture from the
top-level conftest.
"""

from decimal import Decimal

import pytest

from dealflow_kernel.domain.roles import Role

# Sums to 820000; against a TOV of 1,000,000 the margin is 18% (At Threshold).
DEAL_COSTS = {
    "trainer_cost": Decimal("400000"),
    "lab_cost": Decimal("150000"),
    "logistics_cost": Decimal("60000"),
    "content_cost": Decimal("50000"),
    "contingency_cost": Decimal("20000"),
    "travel_cost": Decimal("80000"),
    "marketing_cost": Decimal("40000"),
    "other_cost": Decimal("20000"),
}

DEAL_TOV = Decimal("1000000")


@pytest.fixture
def pending_deal(container, sales_exec_id):
    return container.sales.create_deal(
        client_name="Acme Corp",
        deal_name="Cloud Bootcamp",
        total_order_value=DEAL_TOV,
        actor_id=sales_exec_id,
        actor_role=Role.SALES_EXECUTIVE.value,
        costs=DEAL_COSTS,
    )


@pytest.fixture
def approved_deal(container, pending_deal, director_id):
    return container.sales.approve_deal(pending_deal.id, director_id, Role.DIRECTOR.value)


@pytest.fixture
def signed_off_program(container, ops_manager_id):
    program = container.delivery.create_program(
        program_name="Kubernetes Fundamentals",
        client_name="Acme Corp",
        actor_id=ops_manager_id,
        actor_role=Role.OPERATIONS_MANAGER.value,
        costs={"tov": Decimal("1000000"), "trainer_po_value": Decimal("300000")},
    )
    return container.delivery.record_sign_off(
        program.id, "client", ops_manager_id, Role.OPERATIONS_MANAGER.value
    )


@pytest.fixture
def individual_vendor(container, finance_manager_id):
    return container.payables.create_vendor(
        vendor_name="Ravi Kumar",
        vendor_type="Individual",
        actor_id=finance_manager_id,
        actor_role=Role.FINANCE_MANAGER.value,
        default_nature_of_service="Professional Services",
    )


@pytest.fixture
def company_vendor(container, finance_manager_id):
    return container.payables.create_vendor(
        vendor_name="LabWorks Pvt Ltd",
        vendor_type="Company",
        actor_id=finance_manager_id,
        actor_role=Role.FINANCE_MANAGER.value,
        pan_number="AABCL1234F",
        default_nature_of_service="Contractor",
    )
