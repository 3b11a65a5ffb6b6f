"""
Integration test fixtures for lexsync.

These fixtures compose the unit fixtures from tests/conftest.py into a
complete offline-sync stack over a scriptable in-memory remote store:
- Durable queue on a real SQLite data directory
- Remote store that can be switched offline and inspected
- Engine, orchestrator and mutator wired as in production

All integration tests should be marked with @pytest.mark.integration
"""

import itertools

import pytest

from remote.client import RemoteConnectionError


class FakeRemoteStore:
    """
    In-memory RemoteStore double.

    Rows live in self.tables[table][id]. Set online = False to make every
    call raise RemoteConnectionError, or add a table name to reject_tables
    to make writes there fail with a 400.
    """

    def __init__(self):
        self.online = True
        self.tables = {}
        self.calls = []
        self.reject_tables = set()
        self._ids = itertools.count(1)

    def _check(self, table=None):
        if not self.online:
            raise RemoteConnectionError("remote store unreachable")
        if table in self.reject_tables:
            from remote.client import RemoteRequestError
            raise RemoteRequestError(f"{table} rejected", 400)

    async def insert(self, table, data, *, idempotency_key=None):
        self._check(table)
        row = {"id": f"{table}-{next(self._ids)}", **data}
        self.tables.setdefault(table, {})[row["id"]] = row
        self.calls.append(("insert", table, row["id"], idempotency_key))
        return row

    async def update(self, table, record_id, data):
        self._check(table)
        row = self.tables.setdefault(table, {}).setdefault(record_id, {"id": record_id})
        row.update(data)
        self.calls.append(("update", table, record_id, None))
        return row

    async def delete(self, table, record_id):
        self._check(table)
        self.tables.get(table, {}).pop(record_id, None)
        self.calls.append(("delete", table, record_id, None))

    async def ping(self):
        self._check()

    async def close(self):
        pass


@pytest.fixture
def fake_remote():
    """Fresh FakeRemoteStore, online."""
    return FakeRemoteStore()


@pytest.fixture
def durable_manager(tmp_path):
    """
    OfflineQueueManager over a SQLite-backed store in tmp_path.

    Usage:
        def test_restart(durable_manager, tmp_path):
            durable_manager.enqueue(...)
            reopened = open_manager(tmp_path)
    """
    from sync_queue.manager import OfflineQueueManager
    from sync_queue.store import PersistentKeyValueStore, QueueStore

    return OfflineQueueManager(QueueStore(PersistentKeyValueStore(str(tmp_path))))


@pytest.fixture
def sync_stack(durable_manager, fake_remote):
    """
    Orchestrator and mutator wired over the durable queue and fake remote.

    Provides:
        - manager: OfflineQueueManager
        - orchestrator: SyncOrchestrator (starts offline, no grace period)
        - mutator: OfflineMutator reading the orchestrator's online flag
        - remote: FakeRemoteStore
    """
    from worker.engine import SyncEngine
    from worker.mutations import OfflineMutator
    from worker.orchestrator import SyncOrchestrator

    engine = SyncEngine(durable_manager, fake_remote, operation_timeout=5.0)
    orchestrator = SyncOrchestrator(durable_manager, engine, is_online=False,
                                    summary_grace_period=0.0)
    mutator = OfflineMutator(durable_manager, fake_remote, lambda: orchestrator.is_online)

    yield {
        "manager": durable_manager,
        "orchestrator": orchestrator,
        "mutator": mutator,
        "remote": fake_remote,
    }
    orchestrator.close()
    durable_manager.close()
