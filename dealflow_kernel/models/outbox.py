"""
Module: dealflow_kernel.models.outbox
Responsibility: Transactional outbox rows.  A side effect (notification) is
    stored in the same transaction as the write that caused it and delivered
    later by OutboxService.dispatch_pending().
Architecture position: Kernel > Models.  Imports only from db/.

Invariants enforced:
    - idempotency_key is unique: enqueuing the same side effect twice stores
      one row.
    - status moves pending -> delivered, or pending -> dead_letter once
      attempts reach the configured maximum.  Delivered and dead-lettered
      rows are never retried automatically.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import Base, UTCDateTime


class OutboxStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    DEAD_LETTER = "dead_letter"


class OutboxMessage(Base):
    """A side effect waiting for (or finished with) delivery."""

    __tablename__ = "outbox_messages"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_outbox_idempotency_key"),
        Index("idx_outbox_status", "status"),
    )

    topic: Mapped[str] = mapped_column(String(100), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OutboxStatus.PENDING.value)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"<OutboxMessage {self.topic} {self.status} attempts={self.attempts}>"
