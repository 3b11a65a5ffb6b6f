"""
Connectivity monitor.

Polls a reachability probe and turns its answers into went-online /
went-offline events, delivered at most once per actual transition.
Online handlers are scheduled as tasks so probing continues while a
(possibly long) sync pass runs.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional

from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Connectivity")

Probe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    """
    Edge-triggered online/offline detector.

    Args:
        probe: Async callable returning True when the remote store is reachable
        on_online: Called on transition to online (sync or async)
        on_offline: Called on transition to offline (sync or async)
        interval: Seconds between probes
        initial_state: Known state at start. None means unknown: the first
                       probe only establishes a baseline and emits nothing.

    Usage:
        monitor = ConnectivityMonitor(probe, orchestrator.went_online,
                                      orchestrator.went_offline, interval=5.0)
        monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        probe: Probe,
        on_online: Callable[[], Any],
        on_offline: Callable[[], Any],
        interval: float = 5.0,
        initial_state: Optional[bool] = None,
    ):
        self.probe = probe
        self.on_online = on_online
        self.on_offline = on_offline
        self.interval = interval
        self._online = initial_state
        self._task: Optional[asyncio.Task] = None
        self._handler_tasks: set[asyncio.Task] = set()

    @property
    def is_online(self) -> Optional[bool]:
        """Last observed state (None before the first probe when started unknown)."""
        return self._online

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_once(self) -> bool:
        """Probe once and emit an event if the state changed. Returns the probed state."""
        try:
            online = bool(await self.probe())
        except Exception as e:
            log_debug(f"Connectivity probe raised {type(e).__name__}: {e}")
            online = False
        self._observe(online)
        return online

    def _observe(self, online: bool) -> None:
        previous = self._online
        if previous == online:
            return
        self._online = online

        if previous is None:
            log_debug(f"Connectivity baseline: {'online' if online else 'offline'}")
            return

        if online:
            self._dispatch(self.on_online)
        else:
            self._dispatch(self.on_offline)

    def _dispatch(self, handler: Callable[[], Any]) -> None:
        try:
            outcome = handler()
        except Exception as e:
            log_error(f"Connectivity handler failed: {type(e).__name__}: {e}")
            return
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._handler_tasks.add(task)
            task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_error(f"Connectivity handler failed: {type(exc).__name__}: {exc}")

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling in the background (requires a running event loop)."""
        if self.running:
            log_trace("Already running")
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        log_debug(f"Connectivity monitor started (interval {self.interval}s)")

    async def stop(self) -> None:
        """Stop polling and wait for in-flight handlers to finish."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._handler_tasks:
            await asyncio.gather(*self._handler_tasks, return_exceptions=True)
        log_debug("Connectivity monitor stopped")


__all__ = ['ConnectivityMonitor', 'Probe']
