"""
Governance ORM Models (``dealflow_modules.governance.orm``).

Responsibility
--------------
SQLAlchemy persistence for governance records and their approval history.

Architecture position
---------------------
**Modules layer** -- persistence.

Invariants enforced
-------------------
* ``ApprovalHistoryEntry`` is append-only: registered with
  ``@append_only`` so the kernel immutability listeners reject UPDATE and
  DELETE.
* ``duplicate_detection_log`` holds a typed ``DuplicateDetectionLog``
  payload dict (with ``kind`` and ``version``) or NULL.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealflow_kernel.db.base import Base, TrackedBase
from dealflow_kernel.db.immutability import append_only


class GovernanceModel(TrackedBase):
    """
    ORM model for governance records.

    Guarantees:
        - At most one of deal_id / program_id identifies the subject; the
          service looks records up by whichever the caller has.
        - approval_history is ordered by its per-record seq.
    """

    __tablename__ = "governance_records"

    __table_args__ = (
        Index("idx_governance_deal_id", "deal_id"),
        Index("idx_governance_program_id", "program_id"),
    )

    deal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    program_id: Mapped[UUID | None] = mapped_column(nullable=True)
    risk_level: Mapped[str] = mapped_column(String(10), default="Medium")
    loss_making_project_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    director_approval_required: Mapped[bool] = mapped_column(Boolean, default=False)
    margin_lock_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    fraud_alert_type: Mapped[str] = mapped_column(String(40), default="None")
    duplicate_detection_log: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    decision_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    approval_history: Mapped[list["ApprovalHistoryEntry"]] = relationship(
        back_populates="governance",
        order_by="ApprovalHistoryEntry.seq",
    )

    def to_dto(self):
        from dealflow_engines.risk import RiskLevel
        from dealflow_kernel.domain.payloads import payload_from_dict
        from dealflow_modules.governance.models import FraudAlertType, Governance

        log = None
        if self.duplicate_detection_log is not None:
            log = payload_from_dict(self.duplicate_detection_log)
        return Governance(
            id=self.id,
            deal_id=self.deal_id,
            program_id=self.program_id,
            risk_level=RiskLevel(self.risk_level),
            loss_making_project_flag=self.loss_making_project_flag,
            director_approval_required=self.director_approval_required,
            margin_lock_flag=self.margin_lock_flag,
            fraud_alert_type=FraudAlertType(self.fraud_alert_type),
            duplicate_detection_log=log,
            decision_notes=self.decision_notes,
            approval_history=tuple(entry.to_dto() for entry in self.approval_history),
        )

    def __repr__(self) -> str:
        subject = self.deal_id or self.program_id
        return f"<GovernanceModel {subject} risk={self.risk_level}>"


@append_only("ApprovalHistoryEntry")
class ApprovalHistoryEntry(Base):
    """One director decision.  Never updated or deleted."""

    __tablename__ = "governance_approval_history"

    __table_args__ = (
        Index("idx_governance_history_governance_id", "governance_id"),
    )

    governance_id: Mapped[UUID] = mapped_column(
        ForeignKey("governance_records.id"), nullable=False
    )
    seq: Mapped[int] = mapped_column(nullable=False)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    actor_role: Mapped[str] = mapped_column(String(40), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    decided_at: Mapped[datetime] = mapped_column(nullable=False)

    governance: Mapped[GovernanceModel] = relationship(back_populates="approval_history")

    def to_dto(self):
        from dealflow_modules.governance.models import ApprovalDecision, ApprovalRecord

        return ApprovalRecord(
            id=self.id,
            governance_id=self.governance_id,
            decision=ApprovalDecision(self.decision),
            actor_id=self.actor_id,
            actor_role=self.actor_role,
            notes=self.notes,
            decided_at=self.decided_at,
        )

    def __repr__(self) -> str:
        return f"<ApprovalHistoryEntry {self.decision} by {self.actor_role}>"
