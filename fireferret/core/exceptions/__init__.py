"""
Exception Module

Structured exception hierarchy for FireFerret.
All exceptions are organized by theme for better maintainability and debuggability.

Module Structure:
-----------------
- **base.py**: FerretError base class + ConfigurationError, StoreConnectionError, StoreOperationError
- **cache.py**: Key-value cache (Redis) exceptions
- **document_store.py**: Document store (MongoDB) exceptions
- **serialization.py**: Codec and key parsing exceptions
- **validation.py**: Argument/option validation exceptions

Usage:
------
```python
from fireferret.core.exceptions import CacheOperationError, InvalidArgumentsError

# Catch both stores' connection failures at once
from fireferret.core.exceptions import StoreConnectionError
```
"""

# Base exception
from fireferret.core.exceptions.base import (
    ConfigurationError,
    FerretError,
    StoreConnectionError,
    StoreOperationError,
)

# Cache exceptions
from fireferret.core.exceptions.cache import CacheConnectionError, CacheOperationError

# Document store exceptions
from fireferret.core.exceptions.document_store import (
    DocumentStoreConnectionError,
    DocumentStoreOperationError,
)

# Serialization exceptions
from fireferret.core.exceptions.serialization import (
    DocumentCodecError,
    KeyParseError,
    SerializationError,
)

# Validation exceptions
from fireferret.core.exceptions.validation import InvalidArgumentsError, ValidationError

__all__ = [
    # Base
    "FerretError",
    "ConfigurationError",
    "StoreConnectionError",
    "StoreOperationError",
    # Cache
    "CacheConnectionError",
    "CacheOperationError",
    # Document store
    "DocumentStoreConnectionError",
    "DocumentStoreOperationError",
    # Serialization
    "SerializationError",
    "DocumentCodecError",
    "KeyParseError",
    # Validation
    "ValidationError",
    "InvalidArgumentsError",
]
