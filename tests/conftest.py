"""
Shared pytest fixtures for lexsync tests.

Provides reusable fixtures for:
- Queue storage (in-memory backend, QueueStore, OfflineQueueManager)
- Remote store doubles (AsyncMock-based RemoteStore)
- Sample payloads for the known tables

The remote store is mocked with unittest.mock so no hosted database is
required during test execution.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock


# =============================================================================
# Queue Storage Fixtures
# =============================================================================

@pytest.fixture
def memory_backend():
    """
    Fresh in-memory key-value backend.

    Usage:
        def test_raw_value(memory_backend, queue_store):
            queue_store.save([])
            assert memory_backend.get(queue_store.key) == "[]"
    """
    from sync_queue.store import MemoryKeyValueStore

    return MemoryKeyValueStore()


@pytest.fixture
def queue_store(memory_backend):
    """QueueStore over the in-memory backend, default storage key."""
    from sync_queue.store import QueueStore

    return QueueStore(memory_backend)


@pytest.fixture
def manager(queue_store):
    """
    OfflineQueueManager with default retry budget (3) over an empty queue.

    Usage:
        def test_enqueue(manager):
            queue_id = manager.enqueue('clients', 'create', {'name': 'Acme'})
            assert manager.pending_count() == 1
    """
    from sync_queue.manager import OfflineQueueManager

    return OfflineQueueManager(queue_store)


# =============================================================================
# Remote Store Fixtures
# =============================================================================

@pytest.fixture
def mock_remote():
    """
    AsyncMock RemoteStore that accepts every write.

    Provides:
        - insert(): returns {'id': 'new-1'} merged with the payload
        - update(): returns {'id': record_id} merged with the payload
        - delete(): returns None
        - ping(): returns None (healthy)
        - close(): AsyncMock

    Usage:
        async def test_sync(manager, mock_remote):
            mock_remote.insert.side_effect = RemoteConnectionError("down")
    """
    remote = MagicMock()

    async def insert(table, data, *, idempotency_key=None):
        return {'id': 'new-1', **data}

    async def update(table, record_id, data):
        return {'id': record_id, **data}

    remote.insert = AsyncMock(side_effect=insert)
    remote.update = AsyncMock(side_effect=update)
    remote.delete = AsyncMock(return_value=None)
    remote.ping = AsyncMock(return_value=None)
    remote.close = AsyncMock(return_value=None)
    return remote


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def client_payload():
    """Valid create payload for the clients table."""
    return {
        'name': 'Acme Traders',
        'client_type': 'corporate',
        'phone': '+92 300 1234567',
        'email': 'legal@acme.example',
        'region': 'Lahore',
    }


@pytest.fixture
def case_payload():
    """Valid create payload for the cases table."""
    return {
        'title': 'Acme v. Beta Textiles',
        'description': 'Breach of supply contract',
        'client_id': 'client-1',
        'status': 'open',
    }


@pytest.fixture
def appointment_payload():
    """Valid create payload for the appointments table."""
    return {
        'date': '2026-11-02',
        'time': '14:30',
        'topic': 'Case review',
        'duration': 45,
        'client_id': 'client-1',
    }
