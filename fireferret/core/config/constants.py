"""
System Constants and Enumerations

This module defines constants and enumerations shared by the indexing
engine, the orchestrator and the store drivers.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for the persisted key grammar and sentinels
- Type-safe enums for verdicts and log stages

Author: System Architect
Date: 2026-10-12
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Request processing stages used as the ``stage`` field of log entries.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}

    Examples:
        log_stage(logger, Stage.QUERY_LIST_LOOKUP, "Cache hit", key=key)
    """

    # Main request lifecycle
    INITIALIZATION = "0.0_INITIALIZATION"
    OPTIONS_VALIDATION = "1.0_OPTIONS_VALIDATION"
    QUERY_LIST_LOOKUP = "2.0_QUERY_LIST_LOOKUP"
    WIDE_MATCH = "2.1_WIDE_MATCH"
    BUCKET_READ = "3.0_BUCKET_READ"
    DOCUMENT_STORE_QUERY = "4.0_DOCUMENT_STORE_QUERY"
    CACHE_WRITE = "5.0_CACHE_WRITE"
    STREAMING = "6.0_STREAMING"

    # Drivers
    REDIS = "R_REDIS"
    MONGO = "M_MONGO"


# ============================================================================
# Cache Verdicts
# ============================================================================


class CacheVerdict(str, Enum):
    """
    Outcome of a QueryList (or findOne index) lookup.

    CACHE_HIT: IDs are cached, documents can be read from buckets
    CACHE_MISS: key has never been cached
    EMPTY_QUERY: query was cached and matched zero documents
    """

    CACHE_HIT = "CACHE_HIT"
    CACHE_MISS = "CACHE_MISS"
    EMPTY_QUERY = "EMPTY_QUERY"


# ============================================================================
# Bucketing
# ============================================================================

# 2^24 counter values / 512 = 2^15 buckets
BUCKET_CAPACITY = 512
DOCUMENT_ID_HEX_LENGTH = 24
COUNTER_HEX_LENGTH = 6

# ============================================================================
# Key Grammar
# ============================================================================

DEFAULT_NAMESPACE = "ff"
QUERY_DELIMITER = "="
RANGE_DELIMITER = "::"
FIND_ONE_SUFFIX = "findOne"

# ============================================================================
# Sentinels
# ============================================================================

# Serialized bodies start with "{" and IDs are hex, so this prefix is free.
RESERVED_PREFIX = "__ff:"

EMPTY_QUERY = f"{RESERVED_PREFIX}EMPTY_QUERY"
NULL_DOCUMENT = f"{RESERVED_PREFIX}NULL_DOCUMENT"
EMPTY_OBJECT = f"{RESERVED_PREFIX}{{}}"
EMPTY_ARRAY = f"{RESERVED_PREFIX}[]"
