"""
Idempotency key helpers.

Cascade side effects are keyed ``<trigger>:<entity_type>:<entity_id>[:<suffix>]``
so that a re-delivered trigger maps to the same outbox row.
"""

from uuid import UUID


def generate_idempotency_key(
    trigger: str,
    entity_type: str,
    entity_id: UUID | str,
    suffix: str | None = None,
) -> str:
    """
    Build a deterministic idempotency key.

    Args:
        trigger: What fired the side effect (e.g. "opportunity_qualified").
        entity_type: Type of the entity the side effect is about.
        entity_id: Id of that entity.
        suffix: Optional discriminator when one trigger emits several effects.

    Returns:
        String of the form ``trigger:entity_type:entity_id[:suffix]``.
    """
    key = f"{trigger}:{entity_type}:{entity_id}"
    if suffix:
        key = f"{key}:{suffix}"
    return key
