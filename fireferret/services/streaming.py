"""
Stream Framing

Turns an async sequence of documents into text chunks a caller can flush
straight to a socket or file.

Two framings:

    JSON array           NDJSON
    ----------           ------
    [{"a":1}             {"a":1}\\n
    ,{"a":2}             {"a":2}\\n
    ]

An empty sequence yields "[" then "]" in array mode and nothing in NDJSON
mode. ObjectIds serialize as their hex string, datetimes as RFC 3339.
"""

from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import orjson
from bson import ObjectId

from fireferret.core.config import Stage
from fireferret.core.exceptions import SerializationError
from fireferret.core.interfaces import Document
from fireferret.core.logging import get_logger, log_stage

logger = get_logger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def dumps_document(document: Document) -> str:
    """
    Serialize one document to compact JSON.

    Raises:
        SerializationError: If the document holds unserializable values
    """
    try:
        return orjson.dumps(document, default=_json_default).decode("utf-8")
    except TypeError as e:
        raise SerializationError.from_exception(
            e, message="Document cannot be streamed as JSON", scope="streaming::dumps"
        ) from e


async def frame_json_array(documents: AsyncIterable[Document]) -> AsyncIterator[str]:
    count = 0
    async for document in documents:
        yield ("," if count else "[") + dumps_document(document)
        count += 1

    if not count:
        yield "["
    yield "]"

    log_stage(logger, Stage.STREAMING, "Stream complete", framing="array", documents=count)


async def frame_ndjson(documents: AsyncIterable[Document]) -> AsyncIterator[str]:
    count = 0
    async for document in documents:
        yield dumps_document(document) + "\n"
        count += 1

    log_stage(logger, Stage.STREAMING, "Stream complete", framing="ndjson", documents=count)


def frame_documents(documents: AsyncIterable[Document], ndjson: bool = False) -> AsyncIterator[str]:
    """Pick the framing configured by CACHE_STREAM_NDJSON."""
    return frame_ndjson(documents) if ndjson else frame_json_array(documents)
