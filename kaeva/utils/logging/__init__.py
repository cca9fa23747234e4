from kaeva.utils.logging.logger import (
    ContextFilter,
    SensitiveFilter,
    configure_logging,
    get_component_logger,
    get_logger,
    job_context,
    performance_timer,
    request_id_var,
)

__all__ = [
    "ContextFilter",
    "SensitiveFilter",
    "configure_logging",
    "get_component_logger",
    "get_logger",
    "job_context",
    "performance_timer",
    "request_id_var",
]
