"""
Queue statistics.

Stateless read-only helpers that work on the manager passed in.
"""

from typing import TYPE_CHECKING

from sync_queue.models import OperationStatus

if TYPE_CHECKING:
    from sync_queue.manager import OfflineQueueManager


def get_stats(manager: 'OfflineQueueManager') -> dict:
    """
    Get queue statistics by status.

    Args:
        manager: OfflineQueueManager instance

    Returns:
        Dict with counts: {
            'pending': int,     # never attempted
            'syncing': int,     # in flight
            'failed': int,      # failed, retries left
            'exhausted': int,   # failed, no retries left
            'total': int
        }
    """
    stats = {
        'pending': 0,
        'syncing': 0,
        'failed': 0,
        'exhausted': 0,
        'total': 0,
    }

    for op in manager.get_queue():
        stats['total'] += 1
        if op.status == OperationStatus.PENDING:
            stats['pending'] += 1
        elif op.status == OperationStatus.SYNCING:
            stats['syncing'] += 1
        elif op.is_exhausted(manager.max_retries):
            stats['exhausted'] += 1
        else:
            stats['failed'] += 1

    return stats


def get_table_breakdown(manager: 'OfflineQueueManager') -> dict[str, int]:
    """Count of queued operations per table, in first-seen order."""
    breakdown: dict[str, int] = {}
    for op in manager.get_queue():
        breakdown[op.table] = breakdown.get(op.table, 0) + 1
    return breakdown


__all__ = ['get_stats', 'get_table_breakdown']
