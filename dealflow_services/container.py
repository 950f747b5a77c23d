"""
dealflow_services.container -- Central DI container for dealflow services.

Responsibility:
    Creates every kernel and module service exactly once for a session and
    wires them together with policy objects built from the active
    configuration.  No module service creates another service internally.

Architecture position:
    Services -- the top of the service layer.  Tests, scripts and any
    outer surface obtain services from here.

Invariants enforced:
    - Single-instance lifecycle: one IdentifierService, LedgerService and
      OutboxService per container, shared by every module service.
    - DI transparency: all wiring is visible in ``__init__``.
    - Module services see the cascade only as a ``CascadeListener``; the
      container is that listener and forwards to the orchestrator, which
      is built after the services it drives.

Failure modes:
    - ValueError / FileNotFoundError from ``get_active_config`` when no
      config is passed and the packaged defaults are broken.

Usage:
    from dealflow_services.container import DealflowContainer

    container = DealflowContainer(session=session, clock=clock)
    container.sales.create_opportunity(...)
    container.cascade.handle(event)
"""

from __future__ import annotations

import random

from sqlalchemy.orm import Session

from dealflow_config import DealflowConfig, get_active_config
from dealflow_config.bridges import (
    build_aging_edges,
    build_margin_bands,
    build_revenue_bands,
    build_withholding_rates,
    default_gst_type,
)
from dealflow_engines.invoice_tax import InvoiceTaxCalculator
from dealflow_engines.risk import RiskScorer
from dealflow_engines.withholding import ServiceClassifier
from dealflow_kernel.domain.cascade import CascadeReport, TriggerEvent
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_kernel.services.outbox_service import OutboxService
from dealflow_modules.delivery.service import DeliveryService
from dealflow_modules.governance.service import GovernanceService
from dealflow_modules.payables.service import PayablesService
from dealflow_modules.procurement.service import ProcurementService
from dealflow_modules.receivables.service import ReceivablesService
from dealflow_modules.sales.service import SalesService
from dealflow_services.cascade_orchestrator import CascadeOrchestrator
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("services.container")


class DealflowContainer:
    """
    Central factory for one session's services.

    Contract:
        Every attribute is constructed in ``__init__`` in dependency order
        and never replaced.

    Guarantees:
        - All module services share the session, clock and kernel services.
        - Cascade triggers raised by any module service reach the
          orchestrator.

    Non-goals:
        - Session lifecycle: the caller owns opening and closing it.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: DealflowConfig | None = None,
        rng: random.Random | None = None,
        risk_scorer: RiskScorer | None = None,
        classifier: ServiceClassifier | None = None,
        tax_calculator: InvoiceTaxCalculator | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.config = config or get_active_config()

        # Kernel
        self.workflow_executor = WorkflowExecutor()
        self.identifiers = IdentifierService(session, self.clock, rng=rng)
        self.ledger = LedgerService(session, self.clock)
        self.outbox = OutboxService(
            session, self.clock, max_attempts=self.config.outbox.max_attempts
        )

        # Modules
        self.governance = GovernanceService(
            session, self.ledger, clock=self.clock, risk_scorer=risk_scorer
        )
        self.procurement = ProcurementService(
            session, self.workflow_executor, self.identifiers, self.ledger, clock=self.clock
        )
        self.payables = PayablesService(
            session,
            self.workflow_executor,
            self.identifiers,
            self.ledger,
            clock=self.clock,
            cascade=self,
            rates=build_withholding_rates(self.config),
            classifier=classifier,
            payment_terms_days=self.config.payables.payment_terms_days,
        )
        self.receivables = ReceivablesService(
            session,
            self.workflow_executor,
            self.identifiers,
            self.ledger,
            self.governance,
            clock=self.clock,
            cascade=self,
            tax_calculator=tax_calculator,
            default_gst_percent=self.config.invoice.gst_percent,
            default_gst_type=default_gst_type(self.config),
            default_sac_code=self.config.invoice.sac_code,
            receivable_terms_days=self.config.invoice.receivable_terms_days,
            aging_edges=build_aging_edges(self.config),
        )
        self.delivery = DeliveryService(
            session,
            self.workflow_executor,
            self.identifiers,
            self.ledger,
            clock=self.clock,
            cascade=self,
        )
        self.sales = SalesService(
            session,
            self.workflow_executor,
            self.identifiers,
            self.ledger,
            self.outbox,
            self.governance,
            clock=self.clock,
            cascade=self,
            margin_bands=build_margin_bands(self.config),
            revenue_bands=build_revenue_bands(self.config),
        )

        # Orchestration
        self.cascade = CascadeOrchestrator(
            session,
            self.ledger,
            self.outbox,
            self.procurement,
            self.payables,
            self.receivables,
            clock=self.clock,
        )

        logger.info(
            "container_initialized",
            extra={"config_id": self.config.config_id, "config_version": self.config.version},
        )

    def handle(self, event: TriggerEvent) -> CascadeReport:
        return self.cascade.handle(event)
