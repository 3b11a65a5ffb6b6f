"""
Offline queue manager.

Public API over the durable queue store and sole writer of the persisted
list. Owns the per-operation state machine:

    pending -> syncing -> removed (success) | failed
    failed  -> syncing -> removed | failed   (retry_count increments again)

Every mutation is a synchronous read-modify-write of the whole list, so it is
atomic with respect to a single asyncio event loop. It is NOT safe for two
processes sharing the same data directory.
"""

from typing import Callable, Optional

from shared.log import create_logger
from sync_queue.models import (
    MAX_RETRIES,
    OperationStatus,
    OperationType,
    QueuedOperation,
    generate_queue_id,
    now_ms,
)
from sync_queue.store import QueueStore
from validation.payloads import PayloadValidationError, validate_payload

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Queue")

# Transitions the sync engine performs; anything else is logged
_EXPECTED_TRANSITIONS = {
    (OperationStatus.PENDING, OperationStatus.SYNCING),
    (OperationStatus.FAILED, OperationStatus.SYNCING),
    (OperationStatus.SYNCING, OperationStatus.FAILED),
    (OperationStatus.SYNCING, OperationStatus.PENDING),
}


class OfflineQueueManager:
    """
    Queryable, observable queue of pending remote writes.

    Args:
        store: QueueStore holding the persisted list
        max_retries: Failed attempts before an operation is exhausted
        strict_tables: Reject tables without a payload schema
        recover_interrupted: Reset records left 'syncing' by a crash to 'pending'

    Usage:
        manager = OfflineQueueManager(QueueStore(MemoryKeyValueStore()))
        queue_id = manager.enqueue('clients', 'create', {'name': 'Acme'})
        assert manager.pending_count() == 1
    """

    def __init__(
        self,
        store: QueueStore,
        max_retries: int = MAX_RETRIES,
        strict_tables: bool = False,
        recover_interrupted: bool = True,
    ):
        self.store = store
        self.max_retries = max_retries
        self.strict_tables = strict_tables

        if recover_interrupted:
            self.recover_interrupted()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def enqueue(
        self,
        table: str,
        operation: OperationType | str,
        data: Optional[dict] = None,
        record_id: Optional[str] = None,
    ) -> str:
        """
        Queue a write for later replay.

        Args:
            table: Remote table name
            operation: create, update or delete
            data: Payload; validated against the table schema
            record_id: Remote primary key, required for update/delete
                       (taken from data['id'] when omitted)

        Returns:
            The new queue_id

        Raises:
            PayloadValidationError: Payload or record id invalid
            PersistenceError: Local storage write failed
        """
        payload = validate_payload(table, operation, data, strict_tables=self.strict_tables)
        operation = OperationType(operation)

        if operation == OperationType.CREATE:
            record_id = None
        else:
            if record_id is None and data and data.get('id') is not None:
                record_id = str(data['id'])
            if not record_id:
                raise PayloadValidationError(f"A record id is required to {operation.value} a {table} row")

        queue = self.store.load()
        live_ids = {op.queue_id for op in queue}
        queue_id = generate_queue_id()
        while queue_id in live_ids:
            queue_id = generate_queue_id()

        queue.append(QueuedOperation(
            queue_id=queue_id,
            table=table,
            operation=operation,
            data=payload,
            record_id=str(record_id) if record_id is not None else None,
            timestamp=now_ms(),
            status=OperationStatus.PENDING,
            retry_count=0,
        ))
        self.store.save(queue)
        log_debug(f"Queued {operation.value} on {table} as {queue_id}")
        return queue_id

    def remove(self, queue_id: str) -> None:
        """Delete a record (after confirmed replay). No-op if absent."""
        queue = self.store.load()
        remaining = [op for op in queue if op.queue_id != queue_id]
        if len(remaining) == len(queue):
            log_trace(f"Remove skipped, {queue_id} not queued")
            return
        self.store.save(remaining)
        log_trace(f"Removed {queue_id}")

    def set_status(self, queue_id: str, status: OperationStatus | str) -> None:
        """
        Transition a record's status.

        Entering 'failed' increments retry_count in the same write.
        No-op if the queue_id is absent.
        """
        status = OperationStatus(status)
        queue = self.store.load()

        for index, op in enumerate(queue):
            if op.queue_id != queue_id:
                continue
            if (op.status, status) not in _EXPECTED_TRANSITIONS:
                log_debug(f"Unusual transition for {queue_id}: {op.status.value} -> {status.value}")
            retry_count = op.retry_count + 1 if status == OperationStatus.FAILED else op.retry_count
            queue[index] = op.model_copy(update={'status': status, 'retry_count': retry_count})
            self.store.save(queue)
            if status == OperationStatus.FAILED and retry_count >= self.max_retries:
                log_warn(f"{queue_id} ({op.operation.value} on {op.table}) exhausted {self.max_retries} retries")
            return

        log_trace(f"Status update skipped, {queue_id} not queued")

    def recover_interrupted(self) -> int:
        """
        Reset records stuck in 'syncing' (process died mid-replay) to 'pending'.

        Returns:
            Number of records reset
        """
        queue = self.store.load()
        reset = 0
        for index, op in enumerate(queue):
            if op.status == OperationStatus.SYNCING:
                queue[index] = op.model_copy(update={'status': OperationStatus.PENDING})
                reset += 1
        if reset:
            self.store.save(queue)
            log_info(f"Recovered {reset} interrupted operation(s) back to pending")
        return reset

    def clear_completed(self) -> None:
        """Remove every record whose status is not 'pending'."""
        queue = self.store.load()
        kept = [op for op in queue if op.status == OperationStatus.PENDING]
        self.store.save(kept)
        log_debug(f"Cleared {len(queue) - len(kept)} non-pending operation(s)")

    def clear_all(self) -> None:
        """Empty the queue unconditionally."""
        self.store.clear()
        log_info("Offline queue cleared")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_queue(self) -> list[QueuedOperation]:
        """Full ordered list, including syncing and exhausted records."""
        return self.store.load()

    def get(self, queue_id: str) -> Optional[QueuedOperation]:
        for op in self.store.load():
            if op.queue_id == queue_id:
                return op
        return None

    def pending_count(self) -> int:
        """Records waiting for replay: pending, or failed with retries left."""
        return len(self.retryable_operations())

    def retryable_operations(self) -> list[QueuedOperation]:
        """The replay set, in insertion order."""
        return [op for op in self.store.load() if op.is_retryable(self.max_retries)]

    def failed_operations(self) -> list[QueuedOperation]:
        """Failed records still eligible for retry."""
        return [
            op for op in self.store.load()
            if op.status == OperationStatus.FAILED and op.retry_count < self.max_retries
        ]

    def exhausted_operations(self) -> list[QueuedOperation]:
        """Failed records that will not be retried automatically."""
        return [op for op in self.store.load() if op.is_exhausted(self.max_retries)]

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Callable[[], None]) -> Callable[[], None]:
        """Register a zero-arg callback fired after every persisted change."""
        return self.store.subscribe(observer)

    def close(self) -> None:
        """Drop all observers."""
        self.store.clear_observers()


__all__ = ['OfflineQueueManager']
