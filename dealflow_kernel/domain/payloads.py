"""
Typed event payloads (``dealflow_kernel.domain.payloads``).

Responsibility
--------------
Frozen, tagged, versioned payload variants for every JSON column that the
ledger, governance and outbox layers persist: audit ``changes``, system
event ``metadata``, governance ``duplicate_detection_log`` and outbox
message bodies.  Consumers decode with ``payload_from_dict`` and match on
the concrete class instead of treating the column as an opaque dict.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, zero I/O.

Invariants enforced
-------------------
* ``to_dict()`` always carries ``kind`` and ``version``.
* ``payload_from_dict(p.to_dict()) == p`` for every registered variant.
* Unknown ``kind`` raises ``UnknownPayloadKindError``; a newer ``version``
  than the decoder knows raises ``UnknownPayloadKindError`` as well.

Failure modes
-------------
* ``KeyError`` when a stored dict lacks a required field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Union

from dealflow_kernel.exceptions import UnknownPayloadKindError


def _dec(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class FieldChanges:
    """Field-level before/after values captured by an audit entry."""

    KIND: ClassVar[str] = "field_changes"
    VERSION: ClassVar[int] = 1

    after: dict[str, str | None] = field(default_factory=dict)
    before: dict[str, str | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "after": dict(self.after),
            "before": dict(self.before),
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> FieldChanges:
        return cls(after=dict(data.get("after") or {}), before=dict(data.get("before") or {}))

    @classmethod
    def of(cls, **after: Any) -> FieldChanges:
        """Build from keyword values, stringifying non-None values."""
        return cls(after={k: _opt_str(v) for k, v in after.items()})


@dataclass(frozen=True)
class TransitionRecorded:
    """A state-machine transition on an entity."""

    KIND: ClassVar[str] = "transition"
    VERSION: ClassVar[int] = 1

    action: str
    from_state: str
    to_state: str
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "action": self.action,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "reason": self.reason,
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> TransitionRecorded:
        return cls(
            action=data["action"],
            from_state=data["from_state"],
            to_state=data["to_state"],
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class CascadeOutcome:
    """What a cascade step did (or why it did nothing)."""

    KIND: ClassVar[str] = "cascade_outcome"
    VERSION: ClassVar[int] = 1

    step: str
    source_type: str
    source_id: str
    created: bool
    target_type: str | None = None
    target_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "step": self.step,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "created": self.created,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "error": self.error,
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> CascadeOutcome:
        return cls(
            step=data["step"],
            source_type=data["source_type"],
            source_id=data["source_id"],
            created=bool(data["created"]),
            target_type=data.get("target_type"),
            target_id=data.get("target_id"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class WithholdingComputed:
    """TDS computation summary attached to a ``TDS Calculated`` event."""

    KIND: ClassVar[str] = "withholding_computed"
    VERSION: ClassVar[int] = 1

    tds_section: str
    tds_percent: Decimal
    tds_amount: Decimal
    net_payable_amount: Decimal
    threshold_status: str
    compliance_status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "tds_section": self.tds_section,
            "tds_percent": str(self.tds_percent),
            "tds_amount": str(self.tds_amount),
            "net_payable_amount": str(self.net_payable_amount),
            "threshold_status": self.threshold_status,
            "compliance_status": self.compliance_status,
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> WithholdingComputed:
        return cls(
            tds_section=data["tds_section"],
            tds_percent=_dec(data["tds_percent"]),
            tds_amount=_dec(data["tds_amount"]),
            net_payable_amount=_dec(data["net_payable_amount"]),
            threshold_status=data["threshold_status"],
            compliance_status=data["compliance_status"],
        )


@dataclass(frozen=True)
class DuplicateDetectionLog:
    """Evidence for a ``Duplicate Invoice`` fraud alert."""

    KIND: ClassVar[str] = "duplicate_detection"
    VERSION: ClassVar[int] = 1

    invoice_id: str
    client_name: str
    invoice_amount: Decimal
    similar_invoice_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "invoice_id": self.invoice_id,
            "client_name": self.client_name,
            "invoice_amount": str(self.invoice_amount),
            "similar_invoice_ids": list(self.similar_invoice_ids),
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> DuplicateDetectionLog:
        return cls(
            invoice_id=data["invoice_id"],
            client_name=data["client_name"],
            invoice_amount=_dec(data["invoice_amount"]),
            similar_invoice_ids=tuple(data.get("similar_invoice_ids") or ()),
        )


@dataclass(frozen=True)
class NotificationPayload:
    """Body of an outbox notification message."""

    KIND: ClassVar[str] = "notification"
    VERSION: ClassVar[int] = 1

    event: str
    entity_type: str
    entity_id: str
    message: str
    recipient_role: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.KIND,
            "version": self.VERSION,
            "event": self.event,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "message": self.message,
            "recipient_role": self.recipient_role,
        }

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> NotificationPayload:
        return cls(
            event=data["event"],
            entity_type=data["entity_type"],
            entity_id=data["entity_id"],
            message=data["message"],
            recipient_role=data.get("recipient_role"),
        )


Payload = Union[
    FieldChanges,
    TransitionRecorded,
    CascadeOutcome,
    WithholdingComputed,
    DuplicateDetectionLog,
    NotificationPayload,
]

_REGISTRY: dict[str, type] = {
    cls.KIND: cls
    for cls in (
        FieldChanges,
        TransitionRecorded,
        CascadeOutcome,
        WithholdingComputed,
        DuplicateDetectionLog,
        NotificationPayload,
    )
}


def payload_from_dict(data: dict[str, Any]) -> Payload:
    """Decode a stored payload dict into its typed variant."""
    kind = data.get("kind")
    cls = _REGISTRY.get(kind)  # type: ignore[arg-type]
    if cls is None:
        raise UnknownPayloadKindError(kind)
    if int(data.get("version", 1)) > cls.VERSION:
        raise UnknownPayloadKindError(f"{kind}@v{data.get('version')}")
    return cls.from_fields(data)
