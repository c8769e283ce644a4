"""
Document Codec - flatten/unflatten for hash storage

Architecture:
    DocumentCodec (bucket body encode/decode)
        ├── flatten()   nested document -> FlatMap {dotted.path: string}
        ├── unflatten() FlatMap -> nested document
        └── ValueKind   tagged variant chosen once per value

Encoding rules:
    - Object keys are path segments; '.', '\\' and a leading '[' are escaped
    - Array elements use index segments: tags.[0], tags.[1]
    - Empty objects/arrays are kept as EMPTY_OBJECT / EMPTY_ARRAY sentinels
    - Booleans render as "true"/"false", numbers with repr()
    - Strings that would read back as something else ("true", "12",
      anything with the reserved prefix) are tagged so they stay strings
    - None, datetimes, nested ObjectIds and non-finite floats carry a tag
    - The top-level "_id" (ObjectId or 24-char hex) is stored as raw hex and
      rebuilt through an id coercer

Author: System Architect
Date: 2026-10-13
"""

import math
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

import orjson
from bson import ObjectId
from bson.errors import InvalidId

from fireferret.core.config.constants import EMPTY_ARRAY, EMPTY_OBJECT, RESERVED_PREFIX
from fireferret.core.exceptions import DocumentCodecError, InvalidArgumentsError

FlatMap = dict[str, str]
IdCoercer = Callable[[str], Any]

ID_FIELD = "_id"

STRING_TAG = f"{RESERVED_PREFIX}str:"
DATETIME_TAG = f"{RESERVED_PREFIX}date:"
OBJECT_ID_TAG = f"{RESERVED_PREFIX}oid:"
FLOAT_TAG = f"{RESERVED_PREFIX}float:"
NULL_VALUE = f"{RESERVED_PREFIX}null"

_INTEGER = re.compile(r"-?\d+")
_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INDEX_SEGMENT = re.compile(r"\[(\d+)\]")


class ValueKind(str, Enum):
    """Document value variants supported by the codec."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"
    OBJECT = "object"
    ARRAY = "array"
    DATETIME = "datetime"
    OBJECT_ID = "object_id"

    @classmethod
    def of(cls, value: Any) -> "ValueKind":
        """
        Classify a value.

        Raises:
            DocumentCodecError: If the value type cannot be cached
        """
        if value is None:
            return cls.NULL
        # bool is a subclass of int
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, Mapping):
            return cls.OBJECT
        if isinstance(value, list | tuple):
            return cls.ARRAY
        if isinstance(value, datetime):
            return cls.DATETIME
        if isinstance(value, ObjectId):
            return cls.OBJECT_ID

        raise DocumentCodecError(
            f"Unsupported document value type: {type(value).__name__}",
            scope="codec::flatten",
            details={"type": type(value).__name__},
        )


class _ArrayNode(dict):
    """Index -> value mapping for an array that is still being rebuilt."""


def coerce_object_id(value: str) -> Any:
    """Turn a 24-hex string into an ObjectId, leave anything else alone."""
    return ObjectId(value) if ObjectId.is_valid(value) else value


# =============================================================================
# FLATTEN
# =============================================================================


def flatten(document: Mapping[str, Any]) -> FlatMap:
    """
    Flatten a document into {dotted.path: string}.

    Raises:
        InvalidArgumentsError: If document is not a mapping
        DocumentCodecError: If a value cannot be encoded
    """
    if not isinstance(document, Mapping):
        raise InvalidArgumentsError(
            "flatten requires a document object",
            scope="codec::flatten",
            details={"type": type(document).__name__},
        )

    flat: FlatMap = {}
    _flatten_into(flat, document, None)
    return flat


def _flatten_into(flat: FlatMap, container: Any, prefix: str | None) -> None:
    if isinstance(container, Mapping):
        items = []
        for key, value in container.items():
            if not isinstance(key, str):
                raise DocumentCodecError(
                    "Document keys must be strings",
                    scope="codec::flatten",
                    details={"key": repr(key), "path": prefix},
                )
            items.append((_escape_key(key), key, value))
    else:
        items = [(f"[{index}]", index, value) for index, value in enumerate(container)]

    for segment, key, value in items:
        path = segment if prefix is None else f"{prefix}.{segment}"
        kind = ValueKind.of(value)

        if prefix is None and key == ID_FIELD:
            flat[path] = _encode_id(value, kind)
        elif kind is ValueKind.OBJECT:
            if value:
                _flatten_into(flat, value, path)
            else:
                flat[path] = EMPTY_OBJECT
        elif kind is ValueKind.ARRAY:
            if value:
                _flatten_into(flat, value, path)
            else:
                flat[path] = EMPTY_ARRAY
        else:
            flat[path] = _encode_leaf(value, kind)


def _escape_key(key: str) -> str:
    escaped = key.replace("\\", "\\\\").replace(".", "\\.")
    if escaped.startswith("["):
        escaped = "\\" + escaped
    return escaped


def _encode_id(value: Any, kind: ValueKind) -> str:
    if kind is ValueKind.OBJECT_ID:
        return str(value)
    if kind is ValueKind.STRING and ObjectId.is_valid(value):
        return value

    raise DocumentCodecError(
        "Document _id must be an ObjectId or a 24-character hex string",
        scope="codec::flatten",
        details={"type": type(value).__name__},
    )


def _encode_leaf(value: Any, kind: ValueKind) -> str:
    if kind is ValueKind.STRING:
        if value in ("true", "false") or _NUMBER.fullmatch(value) or value.startswith(RESERVED_PREFIX):
            return STRING_TAG + value
        return value
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.INTEGER:
        return str(value)
    if kind is ValueKind.FLOAT:
        return repr(value) if math.isfinite(value) else FLOAT_TAG + repr(value)
    if kind is ValueKind.NULL:
        return NULL_VALUE
    if kind is ValueKind.DATETIME:
        return DATETIME_TAG + value.isoformat()
    # ValueKind.OBJECT_ID
    return OBJECT_ID_TAG + str(value)


# =============================================================================
# UNFLATTEN
# =============================================================================


def unflatten(flat: Mapping[str, str], id_coercer: IdCoercer | None = None) -> dict[str, Any]:
    """
    Rebuild a document from its FlatMap.

    Args:
        flat: {dotted.path: string} as produced by flatten()
        id_coercer: Applied to the top-level "_id" value (identity if None)

    Raises:
        InvalidArgumentsError: If flat is not a mapping
        DocumentCodecError: If paths conflict or a value is malformed
    """
    if not isinstance(flat, Mapping):
        raise InvalidArgumentsError(
            "unflatten requires a flat map",
            scope="codec::unflatten",
            details={"type": type(flat).__name__},
        )

    root: dict[str, Any] = {}
    for path, raw in flat.items():
        if not isinstance(path, str) or not isinstance(raw, str):
            raise DocumentCodecError(
                "Flat map entries must be strings",
                scope="codec::unflatten",
                details={"path": repr(path)},
            )

        if path == ID_FIELD:
            value = _decode_id(raw, id_coercer)
        else:
            value = _decode_leaf(raw, path)

        _insert(root, _split_path(path), value, path)

    return _finalize(root)


def _split_path(path: str) -> list[str | int]:
    segments: list[str | int] = []
    buffer: list[str] = []
    escaped = False
    chars = iter(path)

    for char in chars:
        if char == "\\":
            nxt = next(chars, None)
            if nxt is None:
                raise DocumentCodecError(
                    "Dangling escape in flat map path",
                    scope="codec::unflatten",
                    details={"path": path},
                )
            buffer.append(nxt)
            escaped = True
        elif char == ".":
            segments.append(_segment(buffer, escaped))
            buffer, escaped = [], False
        else:
            buffer.append(char)

    segments.append(_segment(buffer, escaped))
    return segments


def _segment(buffer: list[str], escaped: bool) -> str | int:
    text = "".join(buffer)
    match = None if escaped else _INDEX_SEGMENT.fullmatch(text)
    return int(match.group(1)) if match else text


def _decode_id(raw: str, id_coercer: IdCoercer | None) -> Any:
    return id_coercer(raw) if id_coercer else raw


def _decode_leaf(raw: str, path: str) -> Any:
    if raw == "true":
        return True
    if raw == "false":
        return False

    if raw.startswith(RESERVED_PREFIX):
        return _decode_tagged(raw, path)

    if _INTEGER.fullmatch(raw):
        return int(raw)
    if _NUMBER.fullmatch(raw):
        return float(raw)
    return raw


def _decode_tagged(raw: str, path: str) -> Any:
    try:
        if raw == EMPTY_OBJECT:
            return {}
        if raw == EMPTY_ARRAY:
            return _ArrayNode()
        if raw == NULL_VALUE:
            return None
        if raw.startswith(STRING_TAG):
            return raw[len(STRING_TAG):]
        if raw.startswith(DATETIME_TAG):
            return datetime.fromisoformat(raw[len(DATETIME_TAG):])
        if raw.startswith(OBJECT_ID_TAG):
            return ObjectId(raw[len(OBJECT_ID_TAG):])
        if raw.startswith(FLOAT_TAG):
            return float(raw[len(FLOAT_TAG):])
    except (ValueError, InvalidId) as e:
        raise DocumentCodecError.from_exception(
            e, message="Malformed tagged value", scope="codec::unflatten", path=path
        ) from e

    raise DocumentCodecError(
        "Unknown reserved value",
        scope="codec::unflatten",
        details={"path": path, "value": raw},
    )


def _insert(root: dict, segments: list[str | int], value: Any, path: str) -> None:
    node: dict = root
    for depth, segment in enumerate(segments):
        _check_segment(node, segment, path)
        last = depth == len(segments) - 1

        if last:
            existing = node.get(segment)
            if segment not in node:
                node[segment] = value
            elif not _same_container(existing, value):
                raise DocumentCodecError(
                    "Conflicting paths in flat map",
                    scope="codec::unflatten",
                    details={"path": path},
                )
            # an empty container sentinel merges into an existing branch
            return

        child = node.get(segment)
        if child is None:
            child = _ArrayNode() if isinstance(segments[depth + 1], int) else {}
            node[segment] = child
        elif not isinstance(child, dict):
            raise DocumentCodecError(
                "Conflicting paths in flat map",
                scope="codec::unflatten",
                details={"path": path},
            )
        node = child


def _check_segment(node: dict, segment: str | int, path: str) -> None:
    if isinstance(node, _ArrayNode) != isinstance(segment, int):
        raise DocumentCodecError(
            "Array index and object key mixed at the same level",
            scope="codec::unflatten",
            details={"path": path},
        )


def _same_container(existing: Any, value: Any) -> bool:
    return (
        isinstance(existing, dict)
        and isinstance(value, dict)
        and isinstance(existing, _ArrayNode) == isinstance(value, _ArrayNode)
    )


def _finalize(node: Any) -> Any:
    if isinstance(node, _ArrayNode):
        return [_finalize(node[index]) for index in sorted(node)]
    if isinstance(node, dict):
        return {key: _finalize(value) for key, value in node.items()}
    return node


# =============================================================================
# BUCKET BODY CODEC
# =============================================================================


class DocumentCodec:
    """
    Serializes documents into bucket field values and back.

    A body is the JSON object of the document's FlatMap, so it always
    starts with "{" and cannot collide with the reserved sentinels.
    """

    def encode(self, document: Mapping[str, Any]) -> str:
        return orjson.dumps(flatten(document)).decode("utf-8")

    def decode(self, body: str, hydrate: bool = True) -> dict[str, Any]:
        """
        Args:
            body: Serialized bucket field value
            hydrate: Coerce "_id" to ObjectId when True

        Raises:
            DocumentCodecError: If the body is not a JSON flat map
        """
        try:
            flat = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise DocumentCodecError.from_exception(
                e, message="Malformed document body", scope="codec::decode"
            ) from e

        if not isinstance(flat, dict):
            raise DocumentCodecError(
                "Document body is not a flat map",
                scope="codec::decode",
                details={"type": type(flat).__name__},
            )

        return unflatten(flat, coerce_object_id if hydrate else None)
