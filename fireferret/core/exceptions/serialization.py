"""
Serialization Exceptions

Raised while converting documents to and from their cached form, or while
parsing persisted keys. These abort only the affected document or key.
"""

from fireferret.core.exceptions.base import FerretError


class SerializationError(FerretError):
    """Base exception for (de)serialization failures."""
    pass


class DocumentCodecError(SerializationError):
    """
    Raised when a document cannot be flattened or rebuilt.

    Common causes:
    - Unsupported value type (e.g. bytes, Decimal128)
    - Conflicting paths in a flat map ("a" and "a.b")
    - Malformed serialized bucket body
    """
    pass


class KeyParseError(SerializationError):
    """Raised when the range suffix of a cached query key cannot be parsed."""
    pass
