"""
Sync orchestration.

Bridges connectivity transitions to the sync engine and exposes the state UI
indicators render: online/offline, syncing, and {synced, total, failed}
progress. At most one sync pass runs at a time; a trigger that arrives while
a pass is in flight is dropped (the running pass, or the next transition,
picks its work up).
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.log import create_logger

if TYPE_CHECKING:
    from sync_queue.manager import OfflineQueueManager
    from worker.engine import SyncEngine, SyncResult

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Orchestrator")


@dataclass(frozen=True)
class SyncProgress:
    """Progress of the current (or just finished) sync pass."""
    synced: int = 0
    total: int = 0
    failed: int = 0


class SyncOrchestrator:
    """
    Online/offline state machine that triggers sync passes.

    Args:
        manager: OfflineQueueManager (for pending counts)
        engine: SyncEngine that performs the passes
        is_online: Initial connectivity state
        summary_grace_period: Seconds the final progress stays visible after a pass
        on_invalidate: Called on every transition to online so previously
                       fetched remote data is refreshed; may be sync or async

    Usage:
        orchestrator = SyncOrchestrator(manager, engine, is_online=False)
        orchestrator.subscribe(lambda: render(orchestrator.progress))
        await orchestrator.went_online()
    """

    def __init__(
        self,
        manager: 'OfflineQueueManager',
        engine: 'SyncEngine',
        is_online: bool = True,
        summary_grace_period: float = 3.0,
        on_invalidate: Optional[Callable[[], Any]] = None,
    ):
        self.manager = manager
        self.engine = engine
        self.summary_grace_period = summary_grace_period
        self.on_invalidate = on_invalidate

        self._is_online = is_online
        self._is_syncing = False
        self._progress = SyncProgress()
        self._attempts = 0
        self._reset_handle: Optional[asyncio.TimerHandle] = None
        self._observers: dict[object, Callable[[], None]] = {}

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def progress(self) -> SyncProgress:
        return self._progress

    def subscribe(self, observer: Callable[[], None]) -> Callable[[], None]:
        """Register a zero-arg callback fired whenever state or progress changes."""
        token = object()
        self._observers[token] = observer

        def unsubscribe() -> None:
            self._observers.pop(token, None)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers.values()):
            try:
                observer()
            except Exception as e:
                log_error(f"Sync observer {observer!r} raised: {type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # Connectivity events
    # ------------------------------------------------------------------

    async def went_online(self) -> Optional['SyncResult']:
        """
        Handle a transition to online.

        Refreshes remote data via on_invalidate, then runs a sync pass if
        anything is pending.

        Returns:
            The pass result, or None if no pass was started
        """
        log_info("Connectivity restored")
        self._is_online = True
        self._notify()

        if self.on_invalidate is not None:
            try:
                outcome = self.on_invalidate()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                log_warn(f"Cache invalidation failed: {type(e).__name__}: {e}")

        return await self.perform_sync()

    def went_offline(self) -> None:
        """Handle a transition to offline. Queued writes keep accumulating."""
        log_info("Connectivity lost, writes will be queued")
        self._is_online = False
        self._notify()

    # ------------------------------------------------------------------
    # Sync passes
    # ------------------------------------------------------------------

    async def perform_sync(self) -> Optional['SyncResult']:
        """
        Run one sync pass unless one is already in flight or nothing is pending.

        Also the entry point for a manual "retry now" action.

        Returns:
            The pass result, or None if no pass was started
        """
        # Guard is checked and set before the first await
        if self._is_syncing:
            log_debug("Sync already in progress, trigger ignored")
            return None

        pending = self.manager.pending_count()
        if pending == 0:
            log_trace("Nothing pending, sync skipped")
            return None

        self._is_syncing = True
        self._cancel_progress_reset()
        self._attempts = 0
        self._progress = SyncProgress(synced=0, total=pending, failed=0)
        self._notify()
        log_info(f"Syncing {pending} change{'s' if pending != 1 else ''}...")

        try:
            result = await self.engine.sync(on_progress=self._on_progress)
            self._progress = SyncProgress(synced=result.synced, total=result.total, failed=result.failed)

            if result.failed > 0:
                log_warn(f"Sync partially complete: {result.synced} synced, {result.failed} failed, will retry later")
            elif result.synced > 0:
                log_info(f"All changes synced: {result.synced} change{'s' if result.synced != 1 else ''} uploaded")
            return result
        finally:
            self._is_syncing = False
            self._notify()
            self._schedule_progress_reset()

    def _on_progress(self, synced: int, total: int) -> None:
        # Called once per attempt, so every attempt not synced so far failed
        self._attempts += 1
        self._progress = SyncProgress(synced=synced, total=total, failed=self._attempts - synced)
        self._notify()

    def _schedule_progress_reset(self) -> None:
        self._cancel_progress_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.summary_grace_period, self._reset_progress)

    def _cancel_progress_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _reset_progress(self) -> None:
        self._reset_handle = None
        self._progress = SyncProgress()
        self._notify()

    def close(self) -> None:
        """Cancel the pending progress reset and drop observers."""
        self._cancel_progress_reset()
        self._observers.clear()


__all__ = ['SyncOrchestrator', 'SyncProgress']
