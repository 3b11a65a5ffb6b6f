"""
Durable queue store.

Persists the full ordered list of QueuedOperation records as one JSON string
under a single key of a key-value backend. Reads and writes are whole-list:
the manager reads everything, mutates in memory and writes everything back,
so a partially written queue is never observable.

Backends:
- PersistentKeyValueStore: SQLite-backed persistqueue.PDict, survives restarts
- MemoryKeyValueStore: in-process dict (tests, ephemeral sessions)
"""

import json
import os
import sqlite3
from typing import Callable, Optional, Protocol

from pydantic import ValidationError

from shared.log import create_logger
from sync_queue.models import QueuedOperation

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Store")

try:
    import persistqueue
except ImportError:
    persistqueue = None

STORAGE_KEY = 'lexsync-offline-queue'


class PersistenceError(Exception):
    """Local storage read/write failed; the storage mechanism itself is broken."""
    pass


class KeyValueStore(Protocol):
    """String key-value persistence boundary."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Non-durable backend keeping values in a dict."""

    def __init__(self, initial: Optional[dict] = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class PersistentKeyValueStore:
    """
    SQLite-backed backend built on persistqueue.PDict.

    Values live in <data_dir>/queue/data.db. Every set() is committed
    immediately, so a crash after set() returns never loses the write.

    Args:
        data_dir: Directory for lexsync state (created if missing)
        name: PDict table name
    """

    def __init__(self, data_dir: str, name: str = 'offline_queue'):
        if persistqueue is None:
            raise ImportError(
                "persist-queue not installed. Install with: pip install persist-queue"
            )
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, 'queue')
        os.makedirs(self.path, exist_ok=True)
        self._dict = persistqueue.PDict(self.path, name, multithreading=True)
        log_debug(f"Persistent store opened at {self.path}")

    def get(self, key: str) -> Optional[str]:
        try:
            return self._dict[key]
        except KeyError:
            return None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._dict[key] = value
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            if key in self._dict:
                del self._dict[key]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to delete '{key}': {e}") from e


class QueueStore:
    """
    Whole-list persistence of queued operations with change observers.

    Args:
        backend: KeyValueStore implementation
        key: Key the serialized list is stored under

    Usage:
        store = QueueStore(MemoryKeyValueStore())
        unsubscribe = store.subscribe(lambda: print("changed"))
        store.save([op])
        assert store.load() == [op]
    """

    def __init__(self, backend: KeyValueStore, key: str = STORAGE_KEY):
        self.backend = backend
        self.key = key
        self._observers: dict[object, Callable[[], None]] = {}

    def load(self) -> list[QueuedOperation]:
        """
        Read the persisted queue.

        Returns:
            Operations in insertion order. Empty list if nothing is stored,
            if the stored value is corrupt, or if the backend read fails.
        """
        try:
            raw = self.backend.get(self.key)
        except PersistenceError as e:
            log_warn(f"Queue read failed, treating queue as empty: {e}")
            return []

        if raw is None:
            return []

        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise TypeError(f"expected a list, got {type(records).__name__}")
            return [QueuedOperation.model_validate(record) for record in records]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            log_warn(f"Queue state corrupted, treating queue as empty: {e}")
            return []

    def save(self, operations: list[QueuedOperation]) -> None:
        """
        Overwrite the persisted queue and notify observers.

        Raises:
            PersistenceError: Backend write failed (observers not notified)
        """
        raw = json.dumps([op.to_record() for op in operations])
        try:
            self.backend.set(self.key, raw)
        except PersistenceError:
            raise
        except OSError as e:
            raise PersistenceError(f"Failed to write queue: {e}") from e
        log_trace(f"Saved {len(operations)} queued operation(s)")
        self._notify()

    def clear(self) -> None:
        """Delete the persisted queue and notify observers."""
        try:
            self.backend.delete(self.key)
        except OSError as e:
            raise PersistenceError(f"Failed to clear queue: {e}") from e
        self._notify()

    def subscribe(self, observer: Callable[[], None]) -> Callable[[], None]:
        """
        Register a zero-argument callback run after every persisted change.

        Returns:
            Function that deregisters this registration
        """
        token = object()
        self._observers[token] = observer

        def unsubscribe() -> None:
            self._observers.pop(token, None)

        return unsubscribe

    def clear_observers(self) -> None:
        """Drop every registered observer."""
        self._observers.clear()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self) -> None:
        for observer in list(self._observers.values()):
            try:
                observer()
            except Exception as e:
                log_error(f"Queue observer {observer!r} raised: {type(e).__name__}: {e}")


__all__ = [
    'STORAGE_KEY',
    'PersistenceError',
    'KeyValueStore',
    'MemoryKeyValueStore',
    'PersistentKeyValueStore',
    'QueueStore',
]
