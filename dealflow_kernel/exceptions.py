"""
Typed Exception Hierarchy for the Dealflow Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from DealflowError:

    DealflowError (base)
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- InvalidEnumValueError
    |   +-- InvalidAmountError
    |
    +-- EntityNotFoundError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- UnauthorizedTransitionError
    |   +-- TransitionReasonRequiredError
    |   +-- TransitionGuardFailedError
    |
    +-- ProcurementError
    |   +-- DealNotApprovedError
    |
    +-- BillingError
    |   +-- InvoiceNotEligibleError
    |   +-- DuplicateConversionError
    |
    +-- CascadeError
    |
    +-- PayloadError
    |   +-- UnknownPayloadKindError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_FIELD               | Required input absent or blank
                | INVALID_ENUM_VALUE          | Literal outside its enumeration
                | INVALID_AMOUNT              | Negative or non-numeric amount
----------------|-----------------------------|-----------------------------------------
Lookup          | ENTITY_NOT_FOUND            | No row with the given id
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_TRANSITION          | Current state does not allow the action
                | UNAUTHORIZED_TRANSITION     | Actor role lacks the capability
                | TRANSITION_REASON_REQUIRED  | Transition needs a reason (e.g. Lost)
                | TRANSITION_GUARD_FAILED     | Transition guard not satisfied
----------------|-----------------------------|-----------------------------------------
Procurement     | DEAL_NOT_APPROVED           | PO requested for an unapproved deal
----------------|-----------------------------|-----------------------------------------
Billing         | INVOICE_NOT_ELIGIBLE        | Program has no client sign-off
                | DUPLICATE_CONVERSION        | BOC already converted to an invoice
----------------|-----------------------------|-----------------------------------------
Cascade         | CASCADE_STEP_FAILED         | Raised inside a cascade step (always
                |                             | caught by the orchestrator)
----------------|-----------------------------|-----------------------------------------
Payload         | UNKNOWN_PAYLOAD_KIND        | Stored payload tag has no decoder
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | Ledger hash chain validation failed
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of an append-only record

Validation and workflow errors reject the triggering write; callers retry
with corrected input.  Cascade errors never reach the caller of the
triggering operation.
"""


class DealflowError(Exception):
    """
    Base exception for all dealflow errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DEALFLOW_ERROR"


# Validation exceptions


class ValidationError(DealflowError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field was not supplied."""

    code: str = "MISSING_FIELD"

    def __init__(self, entity_type: str, field_name: str):
        self.entity_type = entity_type
        self.field_name = field_name
        super().__init__(f"{entity_type}: '{field_name}' is required")


class InvalidEnumValueError(ValidationError):
    """A literal value is outside its enumeration."""

    code: str = "INVALID_ENUM_VALUE"

    def __init__(self, field_name: str, value: object, allowed: tuple[str, ...]):
        self.field_name = field_name
        self.value = value
        self.allowed = allowed
        super().__init__(
            f"Invalid value {value!r} for '{field_name}'; "
            f"expected one of: {', '.join(allowed)}"
        )


class InvalidAmountError(ValidationError):
    """A monetary amount is negative or otherwise unusable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, amount: object, reason: str):
        self.field_name = field_name
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r} for '{field_name}': {reason}")


# Lookup exceptions


class EntityNotFoundError(DealflowError):
    """No row exists for the requested entity."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Workflow exceptions


class WorkflowError(DealflowError):
    """Base exception for state-machine rejections."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """The current state does not permit the requested action."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, current_state: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"{entity_type} {entity_id}: action '{action}' is not allowed "
            f"from state '{current_state}'"
        )


class UnauthorizedTransitionError(WorkflowError):
    """The actor's role lacks the capability the transition declares."""

    code: str = "UNAUTHORIZED_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        actor_role: str,
        required_roles: tuple[str, ...],
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.actor_role = actor_role
        self.required_roles = required_roles
        super().__init__(
            f"Role '{actor_role}' may not perform '{action}' on {entity_type} "
            f"{entity_id}; requires one of: {', '.join(required_roles)}"
        )


class TransitionReasonRequiredError(WorkflowError):
    """The transition requires a non-empty reason."""

    code: str = "TRANSITION_REASON_REQUIRED"

    def __init__(self, entity_type: str, entity_id: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        super().__init__(f"{entity_type} {entity_id}: '{action}' requires a reason")


class TransitionGuardFailedError(WorkflowError):
    """A guard declared on the transition was not satisfied."""

    code: str = "TRANSITION_GUARD_FAILED"

    def __init__(self, entity_type: str, entity_id: str, action: str, guard_name: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.guard_name = guard_name
        super().__init__(
            f"{entity_type} {entity_id}: guard '{guard_name}' blocks '{action}'"
        )


# Procurement exceptions


class ProcurementError(DealflowError):
    """Base exception for purchase order rejections."""

    code: str = "PROCUREMENT_ERROR"


class DealNotApprovedError(ProcurementError):
    """A purchase order was requested for a deal that is not approved."""

    code: str = "DEAL_NOT_APPROVED"

    def __init__(self, deal_id: str, approval_status: str):
        self.deal_id = deal_id
        self.approval_status = approval_status
        super().__init__(
            f"Deal {deal_id} must be approved before creating a PO (status: {approval_status})"
        )


# Billing exceptions


class BillingError(DealflowError):
    """Base exception for invoice creation rejections."""

    code: str = "BILLING_ERROR"


class InvoiceNotEligibleError(BillingError):
    """Invoice requested for a program without client sign-off."""

    code: str = "INVOICE_NOT_ELIGIBLE"

    def __init__(self, program_id: str):
        self.program_id = program_id
        super().__init__(
            f"Program {program_id} has no client sign-off; invoice cannot be generated"
        )


class DuplicateConversionError(BillingError):
    """Bill of confirmation was already converted to an invoice."""

    code: str = "DUPLICATE_CONVERSION"

    def __init__(self, boc_id: str, invoice_id: str | None):
        self.boc_id = boc_id
        self.invoice_id = invoice_id
        super().__init__(
            f"Bill of confirmation {boc_id} already converted to invoice {invoice_id}"
        )


# Cascade exceptions


class CascadeError(DealflowError):
    """
    A cascade step could not complete.

    Raised inside a step and caught by the cascade orchestrator; never
    propagated to the caller of the triggering operation.
    """

    code: str = "CASCADE_STEP_FAILED"

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"Cascade step '{step}' failed: {reason}")


# Payload exceptions


class PayloadError(DealflowError):
    """Base exception for typed payload decoding."""

    code: str = "PAYLOAD_ERROR"


class UnknownPayloadKindError(PayloadError):
    """A stored payload carries a tag with no registered decoder."""

    code: str = "UNKNOWN_PAYLOAD_KIND"

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unknown payload kind: {kind!r}")


# Audit exceptions


class AuditError(DealflowError):
    """Base exception for ledger errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Ledger hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry {entry_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Immutability exceptions


class ImmutabilityError(DealflowError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    AuditTrailEntry, SystemEventLog and ApprovalHistoryEntry are never
    mutated after write.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
