"""
OutboxService -- at-least-once delivery of cascade side effects.

Responsibility:
    Stores side effects (notifications) as ``OutboxMessage`` rows inside the
    transaction of the write that caused them, and later hands them to
    topic handlers.  Failed deliveries are retried until the configured
    maximum, then parked as dead letters for manual follow-up.

Architecture position:
    Kernel > Services.  ``enqueue`` is called by module services and the
    cascade orchestrator; ``dispatch_pending`` is called by whatever drives
    delivery (a worker, a test, an operator command).

Invariants enforced:
    - One row per idempotency key: re-enqueuing returns the existing row.
    - A message is delivered at least once or ends in ``dead_letter``;
      it is never silently dropped.

Failure modes:
    - Handler exceptions are recorded on the message (attempts,
      last_error), never propagated out of ``dispatch_pending``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealflow_kernel.domain.clock import Clock
from dealflow_kernel.domain.payloads import Payload, payload_from_dict
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.outbox import OutboxMessage, OutboxStatus
from dealflow_kernel.services.base import BaseService

logger = get_logger("services.outbox")

OutboxHandler = Callable[[Payload], None]


@dataclass(frozen=True)
class DispatchResult:
    """Counts from one ``dispatch_pending`` pass."""

    delivered: int = 0
    failed: int = 0
    dead_lettered: int = 0


class OutboxService(BaseService):
    """
    Transactional outbox.

    Non-goals:
        - Does NOT call ``session.commit()``; ``dispatch_pending`` flushes
          status changes and the caller commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_attempts: int = 5,
    ):
        super().__init__(session, clock)
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._max_attempts = max_attempts

    def find_by_key(self, idempotency_key: str) -> OutboxMessage | None:
        return self.session.execute(
            select(OutboxMessage).where(OutboxMessage.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def enqueue(self, topic: str, payload: Payload, idempotency_key: str) -> OutboxMessage:
        """
        Store a pending message, or return the existing one for this key.
        """
        existing = self.find_by_key(idempotency_key)
        if existing is not None:
            logger.info(
                "outbox_duplicate_ignored",
                extra={"topic": topic, "idempotency_key": idempotency_key},
            )
            return existing

        message = OutboxMessage(
            topic=topic,
            idempotency_key=idempotency_key,
            payload=payload.to_dict(),
            status=OutboxStatus.PENDING.value,
            attempts=0,
            created_at=self.clock.now(),
        )
        self.session.add(message)
        self.session.flush()
        logger.info(
            "outbox_message_enqueued",
            extra={"topic": topic, "idempotency_key": idempotency_key},
        )
        return message

    def pending(self, topic: str | None = None) -> list[OutboxMessage]:
        stmt = select(OutboxMessage).where(OutboxMessage.status == OutboxStatus.PENDING.value)
        if topic is not None:
            stmt = stmt.where(OutboxMessage.topic == topic)
        return list(self.session.execute(stmt.order_by(OutboxMessage.created_at)).scalars())

    def dead_letters(self) -> list[OutboxMessage]:
        return list(
            self.session.execute(
                select(OutboxMessage)
                .where(OutboxMessage.status == OutboxStatus.DEAD_LETTER.value)
                .order_by(OutboxMessage.created_at)
            ).scalars()
        )

    def dispatch_pending(self, handlers: Mapping[str, OutboxHandler]) -> DispatchResult:
        """
        Deliver every pending message to the handler registered for its topic.

        A message with no handler counts as a failed attempt.
        """
        delivered = failed = dead_lettered = 0

        for message in self.pending():
            handler = handlers.get(message.topic)
            message.attempts += 1
            try:
                if handler is None:
                    raise LookupError(f"No handler registered for topic '{message.topic}'")
                handler(payload_from_dict(message.payload))
            except Exception as exc:
                message.last_error = f"{type(exc).__name__}: {exc}"
                if message.attempts >= self._max_attempts:
                    message.status = OutboxStatus.DEAD_LETTER.value
                    dead_lettered += 1
                    logger.error(
                        "outbox_message_dead_lettered",
                        extra={
                            "topic": message.topic,
                            "idempotency_key": message.idempotency_key,
                            "attempts": message.attempts,
                            "error": message.last_error,
                        },
                    )
                else:
                    failed += 1
                    logger.warning(
                        "outbox_delivery_failed",
                        extra={
                            "topic": message.topic,
                            "idempotency_key": message.idempotency_key,
                            "attempts": message.attempts,
                            "error": message.last_error,
                        },
                    )
                continue

            message.status = OutboxStatus.DELIVERED.value
            message.delivered_at = self.clock.now()
            delivered += 1
            logger.info(
                "outbox_message_delivered",
                extra={"topic": message.topic, "idempotency_key": message.idempotency_key},
            )

        self.session.flush()
        return DispatchResult(delivered=delivered, failed=failed, dead_lettered=dead_lettered)
