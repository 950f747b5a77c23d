"""
Dealflow business modules.

One sub-package per business area: sales, delivery, procurement, payables,
receivables, governance.  Each has ``models.py`` (enums and frozen DTOs),
``orm.py`` (SQLAlchemy tables), ``workflows.py`` where the entity has a
state machine, and ``service.py`` (the module's public entry point, which
owns the transaction).
"""
