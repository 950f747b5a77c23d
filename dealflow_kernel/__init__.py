"""
Dealflow Kernel

Shared foundation for the commercial lifecycle system:
- Typed exceptions and structured logging
- Workflow value objects and role catalogue
- Append-only ledger (audit trail + system event log) with hash chain
- Atomic business-code sequences
- Transactional outbox for side effects
"""

__version__ = "0.1.0"
