"""
Bucket Hasher

Maps document IDs onto fixed-capacity partitions ("buckets") so that the
number of Redis hashes used for document bodies stays bounded regardless
of collection size.

    bucket(id) = int(id[-6:], 16) // BUCKET_CAPACITY

The trailing 3 bytes of an ObjectId are its counter; 2^24 counter values
over a capacity of 512 give at most 2^15 buckets.

Author: System Architect
Date: 2026-10-13
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from bson import ObjectId

from fireferret.core.config.constants import (
    BUCKET_CAPACITY,
    COUNTER_HEX_LENGTH,
    DOCUMENT_ID_HEX_LENGTH,
)
from fireferret.core.exceptions import DocumentCodecError, InvalidArgumentsError

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def normalize_id(document_id: Any) -> str:
    """
    Return the 24-char hex form of a document ID.

    Raises:
        InvalidArgumentsError: If the ID is not an ObjectId or 24-char hex string
    """
    if isinstance(document_id, ObjectId):
        return str(document_id)

    if (
        not isinstance(document_id, str)
        or len(document_id) != DOCUMENT_ID_HEX_LENGTH
        or not _HEX_DIGITS.issuperset(document_id)
    ):
        raise InvalidArgumentsError(
            "Document ID must be a 24-character hex string",
            scope="bucket::normalize_id",
            details={"document_id": repr(document_id)},
        )
    return document_id


def bucket_of(document_id: str | ObjectId) -> str:
    """
    Compute the bucket name of a document ID.

    Example:
        >>> bucket_of("5f1d7c2e9b1e8a0001000200")
        '1'
    """
    hex_id = normalize_id(document_id)
    counter = int(hex_id[-COUNTER_HEX_LENGTH:], 16)
    return str(counter // BUCKET_CAPACITY)


@dataclass
class Bucket:
    """Accumulator of the documents assigned to one bucket."""

    name: str
    documents: list[dict[str, Any]] = field(default_factory=list)

    def add(self, documents: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> "Bucket":
        """Append one document or a list of documents (never replaces)."""
        if isinstance(documents, Mapping):
            self.documents.append(dict(documents))
        else:
            self.documents.extend(dict(document) for document in documents)
        return self

    @property
    def ids(self) -> list[str]:
        return [document_id_of(document) for document in self.documents]

    def __len__(self) -> int:
        return len(self.documents)


@dataclass
class BucketAssignment:
    """Result of assign(): buckets by name plus the ordered ID list."""

    buckets: dict[str, Bucket] = field(default_factory=dict)
    ids: list[str] = field(default_factory=list)


def document_id_of(document: Any) -> str:
    """
    Hex ID of a document returned by the document store.

    Raises:
        DocumentCodecError: If the document has no _id or its _id is not an
            ObjectId / 24-char hex string
    """
    if not isinstance(document, Mapping) or "_id" not in document:
        raise DocumentCodecError(
            "Cannot cache a document without an _id",
            scope="bucket::document_id",
            details={"type": type(document).__name__},
        )

    try:
        return normalize_id(document["_id"])
    except InvalidArgumentsError as e:
        raise DocumentCodecError(
            "Document _id must be an ObjectId or a 24-character hex string to be cached",
            scope="bucket::document_id",
            details={"document_id": repr(document["_id"])},
        ) from e


def assign(documents: Iterable[Mapping[str, Any]]) -> BucketAssignment:
    """
    Bucket documents and collect their IDs in input order.

    Raises:
        DocumentCodecError: If a document has no cacheable _id
    """
    assignment = BucketAssignment()

    for document in documents:
        hex_id = document_id_of(document)
        name = bucket_of(hex_id)

        bucket = assignment.buckets.get(name)
        if bucket is None:
            bucket = assignment.buckets[name] = Bucket(name)
        bucket.add(document)
        assignment.ids.append(hex_id)

    return assignment


def partition(ids: Iterable[str | ObjectId]) -> dict[str, list[str]]:
    """Group IDs by bucket, preserving their order inside each bucket."""
    groups: dict[str, list[str]] = {}
    for document_id in ids:
        hex_id = normalize_id(document_id)
        groups.setdefault(bucket_of(hex_id), []).append(hex_id)
    return groups
