"""
Module: dealflow_kernel.models.ledger
Responsibility: ORM models for the append-only ledger -- the audit trail of
    every mutation and the system event log of every cascade action.
Architecture position: Kernel > Models.  Imports only from db/.

Invariants enforced:
    - Both tables are append-only: ORM listeners in db/immutability.py reject
      UPDATE and DELETE.
    - AuditTrailEntry.seq is allocated by SequenceService (locked counter),
      and AuditTrailEntry.hash chains to the previous entry's hash.
    - Minimum audit shape: action, entity type, entity id, actor id, actor
      role, changes payload, timestamp.

Audit relevance:
    These rows are the compliance record.  Cascade failures are discoverable
    here (``Cascade Failed`` events) even though callers observe success.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import Base, UTCDateTime, UUIDString


class SystemEventType(str, Enum):
    """Event types recorded in the system event log.  Values are stored literals."""

    DEAL_CREATED = "Deal Created"
    DEAL_APPROVED = "Deal Approved"
    DEAL_ACKNOWLEDGED = "Deal Acknowledged"
    PO_AUTO_GENERATED = "PO Auto-Generated"
    INVOICE_AUTO_GENERATED = "Invoice Auto-Generated"
    TDS_CALCULATED = "TDS Calculated"
    PAYMENT_PROCESSED = "Payment Processed"
    LEDGER_ENTRY_POSTED = "Ledger Entry Posted"
    COMPLIANCE_UPDATED = "Compliance Updated"
    OPPORTUNITY_CONVERTED = "Opportunity Converted"
    CASCADE_FAILED = "Cascade Failed"


class AuditTrailEntry(Base):
    """
    One audited mutation, hash-chained to its predecessor.

    Guarantees:
        - seq is unique and monotonically increasing.
        - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
        - prev_hash is None only for the first entry.
    """

    __tablename__ = "audit_trail"

    __table_args__ = (
        Index("idx_audit_trail_entity", "entity_type", "entity_id"),
        Index("idx_audit_trail_action", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_role: Mapped[str] = mapped_column(String(40), nullable=False)
    # Typed payload, see dealflow_kernel.domain.payloads
    changes: Mapped[dict] = mapped_column(JSON, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditTrailEntry #{self.seq} {self.action} on {self.entity_type}:{self.entity_id}>"


class SystemEventLog(Base):
    """
    One system event: an automatic action and the downstream action it implies.

    Guarantees:
        - event_type is a SystemEventType value.
        - metadata_payload (column ``metadata``) is a typed payload dict or None.
    """

    __tablename__ = "system_event_log"

    __table_args__ = (
        Index("idx_system_event_entity", "entity_type", "entity_id"),
        Index("idx_system_event_type", "event_type"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_role: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    downstream_action: Mapped[str | None] = mapped_column(String(255), nullable=True)
    metadata_payload: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<SystemEventLog #{self.seq} {self.event_type} on {self.entity_type}:{self.entity_id}>"
