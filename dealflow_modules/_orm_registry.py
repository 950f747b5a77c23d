"""
Module ORM Registry (``dealflow_modules._orm_registry``).

Responsibility
--------------
Import every ORM model so ``Base.metadata`` holds all table definitions
before ``create_tables()`` runs, and register the append-only listeners
once the model classes exist.

Architecture position
---------------------
**Modules layer** -- utility.  Called by ``dealflow_kernel.db.engine``'s
``create_tables()`` and by ``tests/conftest.py``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``dealflow_modules.*.orm`` module.  Idempotent."""
    import dealflow_kernel.models  # noqa: F401
    import dealflow_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    # fmt: off
    import dealflow_modules.sales.orm  # noqa: F401
    import dealflow_modules.delivery.orm  # noqa: F401
    import dealflow_modules.procurement.orm  # noqa: F401
    import dealflow_modules.payables.orm  # noqa: F401
    import dealflow_modules.receivables.orm  # noqa: F401
    import dealflow_modules.governance.orm  # noqa: F401
    # fmt: on

    from dealflow_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()
