"""
LedgerService -- tamper-evident audit trail and system event log.

Responsibility:
    Appends ``AuditTrailEntry`` rows for every mutation and
    ``SystemEventLog`` rows for every automatic (cascade) action.  Provides
    hash chain validation and per-entity queries for compliance review.

Architecture position:
    Kernel > Services -- imperative shell, called by every module service
    and by the cascade orchestrator.

Invariants enforced:
    - Sequence monotonicity via SequenceService (never max+1).
    - Audit chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``; every entry links to its predecessor.
    - Append-only: both models are protected by ORM listeners
      (db/immutability.py).
    - Payloads are typed variants (domain/payloads.py), stored through
      ``to_dict()`` so they always carry ``kind`` and ``version``.

Failure modes:
    - AuditChainBrokenError from validate_chain() when a stored hash does
      not match its recomputation or its predecessor.

Audit relevance:
    This IS the ledger.  Nothing else writes to audit_trail or
    system_event_log.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealflow_kernel.domain.clock import Clock
from dealflow_kernel.domain.payloads import FieldChanges, Payload, payload_from_dict
from dealflow_kernel.exceptions import AuditChainBrokenError
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.ledger import AuditTrailEntry, SystemEventLog, SystemEventType
from dealflow_kernel.services.base import BaseService
from dealflow_kernel.services.sequence_service import SequenceService
from dealflow_kernel.utils.hashing import hash_audit_entry, hash_payload

logger = get_logger("services.ledger")


class LedgerService(BaseService):
    """
    Service for appending and validating ledger records.

    Contract:
        Accepts recording requests with a typed payload and flushes an
        append-only row carrying a monotonically increasing ``seq``.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_entry = self.session.execute(
            select(AuditTrailEntry).order_by(AuditTrailEntry.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last_entry.hash if last_entry else None

    def record_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        actor_role: str,
        changes: Payload | None = None,
    ) -> AuditTrailEntry:
        """
        Append one audit trail entry.

        Postconditions:
            - The entry is flushed with the next ``audit_trail`` seq and a
              hash linked to the previous entry.
        """
        seq = self._sequence_service.next_value(SequenceService.AUDIT_TRAIL)
        prev_hash = self._get_last_hash()

        payload_data = (changes or FieldChanges()).to_dict()
        computed_payload_hash = hash_payload(payload_data)
        entry_hash = hash_audit_entry(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        entry = AuditTrailEntry(
            seq=seq,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor_id,
            user_role=actor_role,
            changes=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=entry_hash,
            timestamp=self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "seq": seq,
            },
        )
        return entry

    def record_system_event(
        self,
        event_type: SystemEventType,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        actor_role: str,
        action: str,
        downstream_action: str | None = None,
        metadata: Payload | None = None,
    ) -> SystemEventLog:
        """Append one system event log row."""
        seq = self._sequence_service.next_value(SequenceService.SYSTEM_EVENT)
        event = SystemEventLog(
            seq=seq,
            event_type=SystemEventType(event_type).value,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor_id,
            user_role=actor_role,
            action=action,
            downstream_action=downstream_action,
            metadata_payload=metadata.to_dict() if metadata is not None else None,
            timestamp=self.clock.now(),
        )
        self.session.add(event)
        self.session.flush()

        logger.info(
            "system_event_recorded",
            extra={
                "event_type": event.event_type,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "seq": seq,
            },
        )
        return event

    # Queries

    def trail_for(self, entity_type: str, entity_id: UUID) -> list[AuditTrailEntry]:
        """Audit entries for one entity in seq order."""
        return list(
            self.session.execute(
                select(AuditTrailEntry)
                .where(
                    AuditTrailEntry.entity_type == entity_type,
                    AuditTrailEntry.entity_id == entity_id,
                )
                .order_by(AuditTrailEntry.seq)
            ).scalars()
        )

    def events_for(
        self,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
        event_type: SystemEventType | None = None,
    ) -> list[SystemEventLog]:
        """System events, optionally filtered by entity and/or type, in seq order."""
        stmt = select(SystemEventLog)
        if entity_type is not None:
            stmt = stmt.where(SystemEventLog.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(SystemEventLog.entity_id == entity_id)
        if event_type is not None:
            stmt = stmt.where(SystemEventLog.event_type == SystemEventType(event_type).value)
        return list(self.session.execute(stmt.order_by(SystemEventLog.seq)).scalars())

    @staticmethod
    def decode_changes(entry: AuditTrailEntry) -> Payload:
        return payload_from_dict(entry.changes)

    @staticmethod
    def decode_metadata(event: SystemEventLog) -> Payload | None:
        if event.metadata_payload is None:
            return None
        return payload_from_dict(event.metadata_payload)

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: on the first entry whose hash or link
                does not match.
        """
        entries = self.session.execute(
            select(AuditTrailEntry).order_by(AuditTrailEntry.seq)
        ).scalars().all()

        if not entries:
            return True

        if entries[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"entry_id": str(entries[0].id)})
            raise AuditChainBrokenError(str(entries[0].id), "None", entries[0].prev_hash)

        for i, entry in enumerate(entries):
            expected_payload_hash = hash_payload(entry.changes)
            if entry.payload_hash != expected_payload_hash:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(str(entry.id), expected_payload_hash, entry.payload_hash)

            expected_hash = hash_audit_entry(
                entity_type=entry.entity_type,
                entity_id=str(entry.entity_id),
                action=entry.action,
                payload_hash=entry.payload_hash,
                prev_hash=entry.prev_hash,
            )
            if entry.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(str(entry.id), expected_hash, entry.hash)

            if i > 0 and entry.prev_hash != entries[i - 1].hash:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(
                    str(entry.id), entries[i - 1].hash, entry.prev_hash or "None"
                )

        logger.info("audit_chain_validated", extra={"entry_count": len(entries)})
        return True
