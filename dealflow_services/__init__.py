"""
dealflow_services -- stateful orchestration.

Responsibility:
    The state-machine layer (WorkflowExecutor), the cascade orchestrator
    and the DI container that wires module services together.

Architecture position:
    Services -- the outermost layer.

        dealflow_services/ -> dealflow_modules/  (allowed)
        dealflow_services/ -> dealflow_engines/  (allowed)
        dealflow_services/ -> dealflow_kernel/   (allowed)
        dealflow_kernel/   -> dealflow_services/ (FORBIDDEN)
        dealflow_engines/  -> dealflow_services/ (FORBIDDEN)

    Module services import ``dealflow_services.workflow_executor`` directly,
    so this package init imports nothing eagerly.

Usage:
    from dealflow_services.container import DealflowContainer
"""
