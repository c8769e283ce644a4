from .logger import (
    clear_operation_id,
    get_logger,
    get_operation_id,
    log_stage,
    set_operation_id,
    setup_logging,
)

__all__ = [
    "clear_operation_id",
    "get_logger",
    "get_operation_id",
    "log_stage",
    "set_operation_id",
    "setup_logging",
]
