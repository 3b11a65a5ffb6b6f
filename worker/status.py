"""Short status strings for pending-changes and sync-progress indicators."""

from typing import Optional

from worker.orchestrator import SyncProgress


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def format_pending(count: int) -> Optional[str]:
    """'3 pending', or None when nothing is waiting."""
    if count <= 0:
        return None
    return f"{count} pending"


def format_pending_title(count: int) -> Optional[str]:
    """Longer form for tooltips: '3 changes pending sync'."""
    if count <= 0:
        return None
    return f"{_plural(count, 'change')} pending sync"


def format_sync_status(is_syncing: bool, progress: SyncProgress) -> Optional[str]:
    """
    Status bar text for the current sync state.

    Returns None when there is nothing to show (idle, no recent pass).
    Error details are never included.
    """
    if is_syncing:
        return f"Syncing {progress.synced}/{progress.total} changes..."
    if progress.failed > 0:
        return f"{progress.synced} synced, {progress.failed} failed, will retry"
    if progress.synced > 0:
        return "All changes synced"
    return None


__all__ = ['format_pending', 'format_pending_title', 'format_sync_status']
