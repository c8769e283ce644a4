"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from fireferret.core.config.settings import Settings  # noqa: E402
from tests.test_fixtures import (  # noqa: E402
    InMemoryDocumentStore,
    InMemoryKeyValueStore,
    make_documents,
)

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (pyproject.toml); no event_loop fixture here


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Real Settings object with test values.

    The .env file is ignored so local configuration cannot leak into tests.
    """
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        CACHE_NAMESPACE="ff",
        CACHE_WIDE_MATCH=True,
        CACHE_STREAM_NDJSON=False,
        REDIS_SCAN_COUNT=5,
        REDIS_BATCH_SIZE=3,
        MONGO_DB_NAME="db",
        MONGO_COLLECTION_NAME="coll",
        LOG_LEVEL="DEBUG",
    )


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def sample_documents():
    """Twenty documents, counters 0..19 (all in bucket "0")."""
    return make_documents(20)


@pytest.fixture
def kv_store():
    """In-memory Redis stand-in."""
    return InMemoryKeyValueStore()


@pytest.fixture
def document_store(sample_documents):
    """In-memory MongoDB stand-in seeded with sample_documents."""
    return InMemoryDocumentStore(sample_documents, db_name="db", collection_name="coll")


@pytest.fixture
def orchestrator(kv_store, document_store, test_settings):
    """CacheOrchestrator wired to the in-memory stores."""
    from fireferret.services.cache_orchestrator import CacheOrchestrator

    return CacheOrchestrator(kv_store, document_store, settings=test_settings)
