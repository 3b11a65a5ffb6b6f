"""
Manual recovery of exhausted operations.

Operations that failed MAX_RETRIES times stay in the queue for audit but are
never retried automatically. The only ways out are the two manual actions
here: re-enqueue a fresh copy (new id, retry counter reset) or discard.

Re-enqueue is idempotent per original record: the original is removed in the
same step, so running recovery twice never duplicates a write.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, TYPE_CHECKING

from shared.log import create_logger
from validation.payloads import PayloadValidationError

if TYPE_CHECKING:
    from sync_queue.manager import OfflineQueueManager

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Recovery")

__all__ = [
    "RecoveryResult",
    "requeue_exhausted",
    "discard",
]


@dataclass
class RecoveryResult:
    """
    Result of a requeue_exhausted() call.

    Fields:
        total: Exhausted records considered
        requeued: Records re-enqueued as fresh pending operations
        skipped_not_exhausted: Requested ids that are missing or still retryable
        invalid: Records whose payload no longer validates (left in place)
        new_queue_ids: Ids of the fresh records, in requeue order
    """
    total: int = 0
    requeued: int = 0
    skipped_not_exhausted: int = 0
    invalid: int = 0
    new_queue_ids: List[str] = field(default_factory=list)


def requeue_exhausted(
    manager: "OfflineQueueManager",
    queue_ids: Optional[Iterable[str]] = None,
) -> RecoveryResult:
    """
    Give exhausted operations a fresh retry budget.

    Args:
        manager: OfflineQueueManager instance
        queue_ids: Specific ids to recover; None recovers every exhausted record

    Returns:
        RecoveryResult with counts and new ids

    Examples:
        >>> result = requeue_exhausted(manager)  # doctest: +SKIP
        >>> print(f"Requeued {result.requeued}, invalid {result.invalid}")
    """
    exhausted = {op.queue_id: op for op in manager.exhausted_operations()}

    if queue_ids is None:
        targets = list(exhausted)
    else:
        targets = list(queue_ids)

    result = RecoveryResult(total=len(targets))

    for queue_id in targets:
        op = exhausted.get(queue_id)
        if op is None:
            result.skipped_not_exhausted += 1
            continue

        try:
            new_id = manager.enqueue(op.table, op.operation, op.data, record_id=op.record_id)
        except PayloadValidationError as e:
            log_warn(f"Cannot requeue {queue_id}: {e}")
            result.invalid += 1
            continue

        manager.remove(queue_id)
        result.requeued += 1
        result.new_queue_ids.append(new_id)
        log_debug(f"Requeued exhausted {queue_id} as {new_id}")

    if result.requeued:
        log_info(f"Requeued {result.requeued} exhausted operation(s)")
    return result


def discard(manager: "OfflineQueueManager", queue_ids: Iterable[str]) -> int:
    """
    Remove operations outright, whatever their status.

    Returns:
        Number of records actually removed
    """
    present = {op.queue_id for op in manager.get_queue()}
    removed = 0
    for queue_id in queue_ids:
        if queue_id in present:
            manager.remove(queue_id)
            present.discard(queue_id)
            removed += 1
    if removed:
        log_info(f"Discarded {removed} queued operation(s)")
    return removed
