"""
Offline sync service assembly.

Constructs the queue, remote client, engine, orchestrator, mutator and
connectivity monitor once per process and tears them down together.
"""

import inspect
from typing import Any, Callable, Optional, TYPE_CHECKING

from remote.client import RestRemoteStore
from remote.health import check_remote_health
from shared.log import create_logger
from sync_queue.manager import OfflineQueueManager
from sync_queue.store import KeyValueStore, PersistentKeyValueStore, QueueStore
from worker.connectivity import ConnectivityMonitor
from worker.engine import SyncEngine
from worker.mutations import OfflineMutator
from worker.orchestrator import SyncOrchestrator

if TYPE_CHECKING:
    from remote.client import RemoteStore
    from validation.config import SyncSettings

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Service")


class OfflineSyncService:
    """
    All offline-sync components wired together.

    Connectivity starts as offline until the first probe succeeds, so a
    backlog left by a previous session is replayed only once the remote
    store has actually answered.

    Attributes:
        manager: OfflineQueueManager
        engine: SyncEngine
        orchestrator: SyncOrchestrator
        mutator: OfflineMutator
        monitor: ConnectivityMonitor

    Usage:
        service = OfflineSyncService.from_settings(settings)
        service.start()
        result = await service.mutator.mutate('clients', 'create', {'name': 'Acme'})
        ...
        await service.close()
    """

    def __init__(
        self,
        manager: OfflineQueueManager,
        remote: 'RemoteStore',
        operation_timeout: Optional[float] = 30.0,
        health_check_interval: float = 5.0,
        health_check_timeout: float = 5.0,
        summary_grace_period: float = 3.0,
        on_invalidate: Optional[Callable[[], Any]] = None,
        initially_online: bool = False,
    ):
        self.manager = manager
        self.remote = remote
        self.engine = SyncEngine(manager, remote, operation_timeout=operation_timeout)
        self.orchestrator = SyncOrchestrator(
            manager,
            self.engine,
            is_online=initially_online,
            summary_grace_period=summary_grace_period,
            on_invalidate=on_invalidate,
        )
        self.mutator = OfflineMutator(manager, remote, lambda: self.orchestrator.is_online)
        self._health_check_timeout = health_check_timeout
        self.monitor = ConnectivityMonitor(
            self._probe,
            self.orchestrator.went_online,
            self.orchestrator.went_offline,
            interval=health_check_interval,
            initial_state=initially_online,
        )

    @classmethod
    def from_settings(
        cls,
        settings: 'SyncSettings',
        remote: Optional['RemoteStore'] = None,
        backend: Optional[KeyValueStore] = None,
        on_invalidate: Optional[Callable[[], Any]] = None,
    ) -> 'OfflineSyncService':
        """
        Build the service from configuration.

        Args:
            settings: Validated SyncSettings
            remote: RemoteStore to use instead of a RestRemoteStore
            backend: KeyValueStore to use instead of the persistent SQLite store
            on_invalidate: Hook run on every transition to online
        """
        if backend is None:
            backend = PersistentKeyValueStore(settings.data_dir)
        if remote is None:
            remote = RestRemoteStore(
                settings.remote_url,
                api_key=settings.remote_api_key,
                timeout=settings.operation_timeout,
            )

        store = QueueStore(backend, key=settings.storage_key)
        manager = OfflineQueueManager(
            store,
            max_retries=settings.max_retries,
            strict_tables=settings.strict_tables,
        )
        return cls(
            manager,
            remote,
            operation_timeout=settings.operation_timeout,
            health_check_interval=settings.health_check_interval,
            health_check_timeout=settings.health_check_timeout,
            summary_grace_period=settings.summary_grace_period,
            on_invalidate=on_invalidate,
        )

    async def _probe(self) -> bool:
        healthy, _ = await check_remote_health(self.remote, timeout=self._health_check_timeout)
        return healthy

    def start(self) -> None:
        """Start connectivity monitoring (requires a running event loop)."""
        self.monitor.start()
        log_info(f"Offline sync started, {self.manager.pending_count()} change(s) pending")

    async def close(self) -> None:
        """Stop monitoring and release every resource."""
        await self.monitor.stop()
        self.orchestrator.close()
        self.manager.close()
        close = getattr(self.remote, "close", None)
        if close is not None:
            outcome = close()
            if inspect.isawaitable(outcome):
                await outcome
        log_info("Offline sync shutting down")


__all__ = ['OfflineSyncService']
