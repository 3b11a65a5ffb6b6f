"""
Durable offline write queue.

Writes captured while offline survive process restarts and are replayed in
enqueue order once connectivity returns.
"""

from sync_queue.models import MAX_RETRIES, OperationStatus, OperationType, QueuedOperation
from sync_queue.store import (
    KeyValueStore,
    MemoryKeyValueStore,
    PersistenceError,
    PersistentKeyValueStore,
    QueueStore,
)
from sync_queue.manager import OfflineQueueManager
from sync_queue.operations import get_stats

__all__ = [
    'MAX_RETRIES',
    'OperationStatus',
    'OperationType',
    'QueuedOperation',
    'KeyValueStore',
    'MemoryKeyValueStore',
    'PersistenceError',
    'PersistentKeyValueStore',
    'QueueStore',
    'OfflineQueueManager',
    'get_stats',
]
