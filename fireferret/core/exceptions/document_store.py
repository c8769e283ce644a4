"""
Document Store Exceptions

All exceptions related to the backing document database (MongoDB).
"""

from fireferret.core.exceptions.base import StoreConnectionError, StoreOperationError


class DocumentStoreConnectionError(StoreConnectionError):
    """Raised when the document store cannot be reached, or fails to close."""
    pass


class DocumentStoreOperationError(StoreOperationError):
    """Raised when a find/findOne against the document store fails."""
    pass
