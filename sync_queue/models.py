"""
Queued operation model.

A QueuedOperation is a single write captured while offline, the unit of
durability and retry. Records are persisted with camelCase keys
(queueId, recordId, retryCount) so the stored JSON stays readable by other
clients of the same queue format.
"""

import itertools
import secrets
import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Failed attempts after which an operation is no longer retried automatically
MAX_RETRIES = 3

# Per-process counter, combined with the timestamp so ids from one process never collide
_id_counter = itertools.count(1)


class OperationType(str, Enum):
    """Remote write kinds that can be queued."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class OperationStatus(str, Enum):
    """Lifecycle states of a queued operation.

    pending -> syncing -> (removed | failed)
    failed  -> syncing -> (removed | failed)
    """
    PENDING = "pending"
    SYNCING = "syncing"
    FAILED = "failed"


def now_ms() -> int:
    """Current time in milliseconds since epoch."""
    return int(time.time() * 1000)


def generate_queue_id() -> str:
    """
    Generate a fresh queue id.

    Format: q-<epoch ms>-<process counter>-<6 hex chars>

    Example:
        >>> generate_queue_id()  # doctest: +SKIP
        'q-1760870400000-1-a3f09c'
    """
    return f"q-{now_ms()}-{next(_id_counter)}-{secrets.token_hex(3)}"


class QueuedOperation(BaseModel):
    """
    A pending remote write.

    Attributes:
        queue_id: Unique handle, generated at enqueue time
        table: Remote table the operation targets
        operation: create, update or delete
        data: Payload sent to the remote store
        record_id: Remote primary key (update/delete only)
        timestamp: Creation time in epoch milliseconds
        status: pending, syncing or failed
        retry_count: Number of failed attempts so far
    """

    model_config = ConfigDict(populate_by_name=True)

    queue_id: str = Field(alias="queueId", min_length=1)
    table: str = Field(min_length=1)
    operation: OperationType
    data: dict[str, Any] = Field(default_factory=dict)
    record_id: Optional[str] = Field(default=None, alias="recordId")
    timestamp: int
    status: OperationStatus = OperationStatus.PENDING
    retry_count: int = Field(default=0, ge=0, alias="retryCount")

    def is_exhausted(self, max_retries: int = MAX_RETRIES) -> bool:
        """True once the operation has failed max_retries times."""
        return self.status == OperationStatus.FAILED and self.retry_count >= max_retries

    def is_retryable(self, max_retries: int = MAX_RETRIES) -> bool:
        """True if the operation belongs in the next sync pass."""
        if self.status == OperationStatus.PENDING:
            return True
        return self.status == OperationStatus.FAILED and self.retry_count < max_retries

    def to_record(self) -> dict:
        """Serialize to the persisted (camelCase, JSON-safe) form."""
        return self.model_dump(by_alias=True, mode="json")


__all__ = [
    'MAX_RETRIES',
    'OperationType',
    'OperationStatus',
    'QueuedOperation',
    'generate_queue_id',
    'now_ms',
]
