"""
Offline-aware writes.

Front door for application code that wants to write to the remote store:
online writes go straight through, offline writes (and writes that fail
because the store cannot be reached) are captured into the offline queue
and reported back as accepted-offline.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.log import create_logger
from sync_queue.models import OperationType
from validation.errors import is_connectivity_error
from validation.payloads import validate_payload
from worker.engine import apply_operation

if TYPE_CHECKING:
    from remote.client import RemoteStore
    from sync_queue.manager import OfflineQueueManager

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Mutations")


@dataclass
class MutationResult:
    """
    Outcome of a write.

    Fields:
        data: Row returned by the remote store, or the queued payload when offline
        offline: True if the write was queued instead of sent
        queue_id: Queue handle of the captured write (offline only)
    """
    data: dict[str, Any] = field(default_factory=dict)
    offline: bool = False
    queue_id: Optional[str] = None


class OfflineMutator:
    """
    Write through to the remote store, or queue when offline.

    Args:
        manager: OfflineQueueManager that captures offline writes
        remote: RemoteStore used while online
        is_online: Zero-arg callable reporting current connectivity

    Usage:
        mutator = OfflineMutator(manager, remote, lambda: orchestrator.is_online)
        result = await mutator.mutate('clients', 'create', {'name': 'Acme'})
        if result.offline:
            notify("Saved offline, will sync when you're back online")
    """

    def __init__(
        self,
        manager: 'OfflineQueueManager',
        remote: 'RemoteStore',
        is_online: Callable[[], bool],
    ):
        self.manager = manager
        self.remote = remote
        self.is_online = is_online

    async def mutate(
        self,
        table: str,
        operation: OperationType | str,
        data: Optional[dict] = None,
        record_id: Optional[str] = None,
    ) -> MutationResult:
        """
        Perform or queue a write.

        Raises:
            PayloadValidationError: Payload invalid (never queued)
            RemoteStoreError: Online write rejected for a reason other than connectivity
        """
        payload = validate_payload(table, operation, data, strict_tables=self.manager.strict_tables)
        operation = OperationType(operation)

        if not self.is_online():
            return self._capture(table, operation, data, record_id)

        if record_id is None and operation != OperationType.CREATE and data and data.get('id') is not None:
            record_id = str(data['id'])

        try:
            row = await apply_operation(self.remote, table, operation, payload, record_id=record_id)
        except Exception as e:
            if not is_connectivity_error(e):
                raise
            log_info(f"Remote store unreachable during {operation.value} on {table}, queueing write")
            return self._capture(table, operation, data, record_id)

        return MutationResult(data=row)

    def _capture(
        self,
        table: str,
        operation: OperationType,
        data: Optional[dict],
        record_id: Optional[str],
    ) -> MutationResult:
        queue_id = self.manager.enqueue(table, operation, data, record_id=record_id)
        queued = self.manager.get(queue_id)
        payload = dict(queued.data) if queued is not None else {}
        log_debug(f"Saved offline: {operation.value} on {table} as {queue_id}")
        return MutationResult(data=payload, offline=True, queue_id=queue_id)


__all__ = ['MutationResult', 'OfflineMutator']
