"""Kernel utilities: deterministic hashing, business identifiers, idempotency keys."""
