"""
Sync engine: replays queued writes against the remote store.

One sync pass:
1. Snapshots the retryable operations once, before the first await, so
   writes enqueued while the pass runs wait for the next pass.
2. Replays them strictly in enqueue order, one at a time. Sequential replay
   keeps dependent writes (create a client, then a case for it) in the
   order the user made them.
3. Removes each operation that succeeds and marks each one that fails as
   failed. A failure never aborts the pass.

Remote failures are recoverable and stay inside the pass. A local
PersistenceError is not: it propagates to the caller.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.log import create_logger
from sync_queue.models import OperationStatus, OperationType, QueuedOperation
from validation.errors import PermanentError

if TYPE_CHECKING:
    from remote.client import RemoteStore
    from sync_queue.manager import OfflineQueueManager

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Engine")

ProgressCallback = Callable[[int, int], None]


@dataclass
class SyncResult:
    """Totals for one sync pass."""
    synced: int = 0
    failed: int = 0
    total: int = 0


async def apply_operation(
    remote: 'RemoteStore',
    table: str,
    operation: OperationType | str,
    data: dict[str, Any],
    record_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> dict[str, Any]:
    """
    Send one write to the remote store.

    Returns:
        The written row for create/update, {} for delete

    Raises:
        PermanentError: update/delete without a record id
        RemoteStoreError: the remote store rejected or never received the write
    """
    operation = OperationType(operation)

    if operation == OperationType.CREATE:
        return await remote.insert(table, data, idempotency_key=idempotency_key)

    if not record_id:
        raise PermanentError(f"No record ID for {operation.value} on {table}")

    if operation == OperationType.UPDATE:
        return await remote.update(table, record_id, data)

    await remote.delete(table, record_id)
    return {}


class SyncEngine:
    """
    Drains retryable operations from the queue manager.

    Args:
        manager: OfflineQueueManager owning the queue
        remote: RemoteStore to replay against
        operation_timeout: Deadline in seconds for each remote call (None = no deadline)

    Usage:
        engine = SyncEngine(manager, remote, operation_timeout=30.0)
        result = await engine.sync(on_progress=lambda done, total: ...)
    """

    def __init__(
        self,
        manager: 'OfflineQueueManager',
        remote: 'RemoteStore',
        operation_timeout: Optional[float] = 30.0,
    ):
        self.manager = manager
        self.remote = remote
        self.operation_timeout = operation_timeout

    async def sync(self, on_progress: Optional[ProgressCallback] = None) -> SyncResult:
        """
        Run one sync pass over a snapshot of the retryable operations.

        Args:
            on_progress: Called with (synced_so_far, total) after every attempt

        Returns:
            SyncResult with synced/failed/total counts
        """
        operations = self.manager.retryable_operations()
        result = SyncResult(total=len(operations))

        if not operations:
            log_trace("Nothing to sync")
            return result

        log_info(f"Sync pass started: {result.total} operation(s)")

        for op in operations:
            self.manager.set_status(op.queue_id, OperationStatus.SYNCING)

            try:
                await self._dispatch(op)
            except Exception as e:
                # Any remote failure is per-operation: mark failed, keep going
                self.manager.set_status(op.queue_id, OperationStatus.FAILED)
                result.failed += 1
                log_warn(
                    f"Failed to sync {op.operation.value} on {op.table} ({op.queue_id}, "
                    f"attempt {op.retry_count + 1}): {type(e).__name__}: {e}"
                )
            else:
                self.manager.remove(op.queue_id)
                result.synced += 1
                log_debug(f"Synced {op.operation.value} on {op.table} ({op.queue_id})")

            if on_progress is not None:
                on_progress(result.synced, result.total)

        log_info(f"Sync pass complete: {result.synced} synced, {result.failed} failed")
        return result

    async def _dispatch(self, op: QueuedOperation) -> dict[str, Any]:
        call = apply_operation(
            self.remote,
            op.table,
            op.operation,
            op.data,
            record_id=op.record_id,
            idempotency_key=op.queue_id,
        )
        if self.operation_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.operation_timeout)


__all__ = ['SyncEngine', 'SyncResult', 'apply_operation', 'ProgressCallback']
