"""Typed payload variants and the tagged decoder."""

from decimal import Decimal
from uuid import uuid4

import pytest

from dealflow_kernel.domain.payloads import (
    CascadeOutcome,
    DuplicateDetectionLog,
    FieldChanges,
    NotificationPayload,
    TransitionRecorded,
    WithholdingComputed,
    payload_from_dict,
)
from dealflow_kernel.exceptions import UnknownPayloadKindError


class TestPayloadEncoding:

    def test_every_dict_carries_kind_and_version(self):
        for payload in (
            FieldChanges.of(status="Approved"),
            TransitionRecorded(action="approve", from_state="Pending", to_state="Approved"),
            NotificationPayload(event="e", entity_type="Deal", entity_id="x", message="m"),
        ):
            data = payload.to_dict()
            assert data["kind"] == payload.KIND
            assert data["version"] == 1

    def test_field_changes_of_stringifies_values(self):
        deal_id = uuid4()
        changes = FieldChanges.of(amount=Decimal("18.0000"), deal_id=deal_id, notes=None)
        assert changes.after == {"amount": "18.0000", "deal_id": str(deal_id), "notes": None}
        assert changes.before == {}

    def test_withholding_decimals_stored_as_strings(self):
        payload = WithholdingComputed(
            tds_section="194J",
            tds_percent=Decimal("20"),
            tds_amount=Decimal("50000.00"),
            net_payable_amount=Decimal("200000.00"),
            threshold_status="Above Threshold",
            compliance_status="Pending PAN",
        )
        data = payload.to_dict()
        assert data["tds_amount"] == "50000.00"
        assert payload_from_dict(data) == payload

    def test_duplicate_log_restores_tuple(self):
        log = DuplicateDetectionLog(
            invoice_id="i-2",
            client_name="Acme",
            invoice_amount=Decimal("1000"),
            similar_invoice_ids=("i-1",),
        )
        data = log.to_dict()
        assert data["similar_invoice_ids"] == ["i-1"]
        assert payload_from_dict(data).similar_invoice_ids == ("i-1",)

    def test_cascade_outcome_decodes(self):
        outcome = CascadeOutcome(
            step="po_status_stub",
            source_type="Deal",
            source_id="d-1",
            created=False,
            error="boom",
        )
        decoded = payload_from_dict(outcome.to_dict())
        assert isinstance(decoded, CascadeOutcome)
        assert decoded.error == "boom"
        assert decoded.created is False


class TestPayloadDecoding:

    def test_unknown_kind_rejected(self):
        with pytest.raises(UnknownPayloadKindError) as exc_info:
            payload_from_dict({"kind": "mystery", "version": 1})
        assert exc_info.value.code == "UNKNOWN_PAYLOAD_KIND"

    def test_missing_kind_rejected(self):
        with pytest.raises(UnknownPayloadKindError):
            payload_from_dict({"after": {}})

    def test_newer_version_rejected(self):
        data = FieldChanges.of(a=1).to_dict()
        data["version"] = 2
        with pytest.raises(UnknownPayloadKindError):
            payload_from_dict(data)

    def test_missing_required_field_raises_key_error(self):
        with pytest.raises(KeyError):
            payload_from_dict({"kind": "transition", "version": 1, "action": "approve"})
