"""
Core Module

Foundational components: configuration, logging, exceptions and protocols.
"""

from .config import CacheVerdict, Settings, Stage, get_settings, reload_settings
from .exceptions import (
    CacheConnectionError,
    CacheOperationError,
    ConfigurationError,
    DocumentCodecError,
    DocumentStoreConnectionError,
    DocumentStoreOperationError,
    FerretError,
    InvalidArgumentsError,
    KeyParseError,
    SerializationError,
    StoreConnectionError,
    StoreOperationError,
    ValidationError,
)
from .logging import (
    clear_operation_id,
    get_logger,
    get_operation_id,
    log_stage,
    set_operation_id,
    setup_logging,
)

__all__ = [
    "CacheVerdict",
    "Settings",
    "Stage",
    "get_settings",
    "reload_settings",
    "setup_logging",
    "get_logger",
    "set_operation_id",
    "get_operation_id",
    "clear_operation_id",
    "log_stage",
    "FerretError",
    "ConfigurationError",
    "StoreConnectionError",
    "StoreOperationError",
    "CacheConnectionError",
    "CacheOperationError",
    "DocumentStoreConnectionError",
    "DocumentStoreOperationError",
    "SerializationError",
    "DocumentCodecError",
    "KeyParseError",
    "ValidationError",
    "InvalidArgumentsError",
]
