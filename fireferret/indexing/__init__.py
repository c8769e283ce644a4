"""
Indexing Engine

Pure building blocks of the cache layout:

- **bucket**: document ID -> bucket partition
- **codec**: nested document <-> FlatMap <-> bucket body
- **options**: query options and pagination ranges
- **query_key**: canonical base/ranged/findOne keys
- **wide_match**: minimal cached superset for a paginated miss
"""

from fireferret.indexing.bucket import (
    Bucket,
    BucketAssignment,
    assign,
    bucket_of,
    document_id_of,
    normalize_id,
    partition,
)
from fireferret.indexing.codec import DocumentCodec, ValueKind, coerce_object_id, flatten, unflatten
from fireferret.indexing.options import (
    PaginationOptions,
    PaginationRange,
    QueryOptions,
    parse_options,
    validate_pagination,
)
from fireferret.indexing.query_key import QueryKey, canonical_query, parse_range_suffix
from fireferret.indexing.wide_match import (
    LocalRange,
    WideMatch,
    WideMatchResolver,
    escape_glob,
    select_wide_match,
)

__all__ = [
    # Bucketing
    "Bucket",
    "BucketAssignment",
    "assign",
    "bucket_of",
    "document_id_of",
    "normalize_id",
    "partition",
    # Codec
    "DocumentCodec",
    "ValueKind",
    "coerce_object_id",
    "flatten",
    "unflatten",
    # Options
    "PaginationOptions",
    "PaginationRange",
    "QueryOptions",
    "parse_options",
    "validate_pagination",
    # Keys
    "QueryKey",
    "canonical_query",
    "parse_range_suffix",
    # Wide match
    "LocalRange",
    "WideMatch",
    "WideMatchResolver",
    "escape_glob",
    "select_wide_match",
]
