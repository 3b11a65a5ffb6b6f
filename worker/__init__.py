"""
Sync worker: replays the offline queue and tracks connectivity.

Exports the sync engine, the orchestrator that triggers it on connectivity
changes, and the offline-aware write front door.
"""

from worker.engine import SyncEngine, SyncResult
from worker.orchestrator import SyncOrchestrator, SyncProgress
from worker.connectivity import ConnectivityMonitor
from worker.mutations import MutationResult, OfflineMutator

__all__ = [
    'SyncEngine',
    'SyncResult',
    'SyncOrchestrator',
    'SyncProgress',
    'ConnectivityMonitor',
    'MutationResult',
    'OfflineMutator',
]
