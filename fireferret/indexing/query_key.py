"""
Query Key Builder

Derives the canonical Redis keys for a query.

Key grammar:
    base key   ff:<db>::<collection>:query=<json-query>
    ranged key ff:<db>::<collection>:query=<json-query>::{"start":N,"end":M}
    findOne    ff:<db>::<collection>:findOne

Architectural Decision: compute once, freeze
- Every key is derived in the constructor and stored as a plain string
- Mutating the caller's query or options afterwards cannot change a key
- Ranged keys share the base key as a prefix, which is what wide-match scans on

Author: System Architect
Date: 2026-10-13
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import orjson
from bson import ObjectId
from bson.regex import Regex

from fireferret.core.config.constants import (
    DEFAULT_NAMESPACE,
    FIND_ONE_SUFFIX,
    QUERY_DELIMITER,
    RANGE_DELIMITER,
)
from fireferret.core.exceptions import KeyParseError, SerializationError
from fireferret.indexing.options import QueryOptions, validate_pagination

# Characters JavaScript's encodeURI leaves alone (besides alphanumerics and "_.-~")
_URI_SAFE = ";,/?:@&=+$!*'()#"

_REGEX_FLAGS = (
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
)


def _regex_literal(pattern: str, flags: int) -> str:
    letters = "".join(letter for flag, letter in _REGEX_FLAGS if flags & flag)
    # Redis keys should not carry raw backslashes
    return quote(f"/{pattern}/{letters}", safe=_URI_SAFE)


def _json_default(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        return _regex_literal(value.pattern, value.flags)
    if isinstance(value, Regex):
        flags = value.flags if isinstance(value.flags, int) else 0
        return _regex_literal(value.pattern, flags)
    if isinstance(value, ObjectId):
        return str(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def canonical_query(query: Any) -> str:
    """
    Serialize a query payload to compact JSON.

    Regular expressions become their percent-encoded /pattern/flags literal,
    ObjectIds their hex string. Key order is preserved.

    Raises:
        SerializationError: If the query contains unserializable values
    """
    try:
        return orjson.dumps(query, default=_json_default).decode("utf-8")
    except TypeError as e:
        # orjson.JSONEncodeError is a TypeError
        raise SerializationError.from_exception(
            e, message="Query cannot be serialized into a cache key", scope="query_key::canonical_query"
        ) from e


def parse_range_suffix(key: str, base_key: str) -> tuple[int, int] | None:
    """
    Extract the {start, end} window of a key built on base_key.

    Returns:
        (start, end), or None for the base key itself

    Raises:
        KeyParseError: If key does not extend base_key or its range is malformed
    """
    if key == base_key:
        return None

    prefix = base_key + RANGE_DELIMITER
    if not key.startswith(prefix):
        raise KeyParseError(
            "Key does not belong to the base query",
            scope="query_key::parse_range_suffix",
            details={"key": key},
        )

    try:
        window = orjson.loads(key[len(prefix):])
    except orjson.JSONDecodeError as e:
        raise KeyParseError.from_exception(
            e, message="Range suffix is not JSON", scope="query_key::parse_range_suffix", key=key
        ) from e

    if not isinstance(window, dict):
        raise KeyParseError(
            "Range suffix is not an object",
            scope="query_key::parse_range_suffix",
            details={"key": key},
        )

    start, end = window.get("start"), window.get("end")
    if (
        type(start) is not int
        or type(end) is not int
        or start < 0
        or end < start
    ):
        raise KeyParseError(
            "Range suffix needs integer start <= end",
            scope="query_key::parse_range_suffix",
            details={"key": key},
        )
    return start, end


class QueryKey:
    """
    Frozen set of cache keys for one (db, collection, query, options).

    Attributes:
        base_key: Key of the whole (unpaginated) result set
        key: Ranged key when pagination is present, otherwise base_key
        one_key: Per-collection findOne index hash
        query_string: Canonical query, used as the findOne hash field
        pagination: Requested window, or None

    Example:
        >>> QueryKey("db", "users", {"age": 30}, {"pagination": {"page": 2, "size": 10}}).key
        'ff:db::users:query={"age":30}::{"start":10,"end":20}'
    """

    __slots__ = (
        "namespace",
        "db_name",
        "collection_name",
        "query_string",
        "pagination",
        "base_key",
        "key",
        "one_key",
    )

    def __init__(
        self,
        db_name: str,
        collection_name: str,
        query: Any,
        options: QueryOptions | Mapping[str, Any] | None = None,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        object.__setattr__(self, "namespace", namespace)
        object.__setattr__(self, "db_name", db_name)
        object.__setattr__(self, "collection_name", collection_name)

        query_string = canonical_query(query)
        pagination = validate_pagination(options)
        base_key = f"{namespace}:{db_name}::{collection_name}:query{QUERY_DELIMITER}{query_string}"

        if pagination is not None:
            key = base_key + RANGE_DELIMITER + orjson.dumps(pagination.as_dict()).decode("utf-8")
        else:
            key = base_key

        object.__setattr__(self, "query_string", query_string)
        object.__setattr__(self, "pagination", pagination)
        object.__setattr__(self, "base_key", base_key)
        object.__setattr__(self, "key", key)
        object.__setattr__(
            self, "one_key", f"{namespace}:{db_name}::{collection_name}:{FIND_ONE_SUFFIX}"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def is_ranged(self) -> bool:
        return self.pagination is not None

    def __str__(self) -> str:
        return self.key

    def __repr__(self) -> str:
        return f"QueryKey({self.key!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, QueryKey) and other.key == self.key

    def __hash__(self) -> int:
        return hash(self.key)
