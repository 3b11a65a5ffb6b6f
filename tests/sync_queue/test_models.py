"""
Tests for sync_queue/models.py - QueuedOperation and id generation.
"""

import pytest


class TestQueuedOperation:
    """Field aliases, defaults and retry predicates."""

    def test_accepts_snake_and_camel_case(self):
        from sync_queue.models import QueuedOperation

        snake = QueuedOperation(queue_id="q-1", table="clients", operation="create", timestamp=1)
        camel = QueuedOperation.model_validate(
            {"queueId": "q-1", "table": "clients", "operation": "create", "timestamp": 1}
        )

        assert snake == camel
        assert snake.status.value == "pending"
        assert snake.retry_count == 0
        assert snake.data == {}

    def test_negative_retry_count_rejected(self):
        from pydantic import ValidationError
        from sync_queue.models import QueuedOperation

        with pytest.raises(ValidationError):
            QueuedOperation(queue_id="q-1", table="clients", operation="create",
                            timestamp=1, retry_count=-1)

    @pytest.mark.parametrize("status,retry_count,retryable,exhausted", [
        ("pending", 0, True, False),
        ("syncing", 0, False, False),
        ("failed", 2, True, False),
        ("failed", 3, False, True),
        ("failed", 7, False, True),
    ])
    def test_retry_predicates(self, status, retry_count, retryable, exhausted):
        from sync_queue.models import QueuedOperation

        op = QueuedOperation(queue_id="q-1", table="clients", operation="create",
                             timestamp=1, status=status, retry_count=retry_count)

        assert op.is_retryable() is retryable
        assert op.is_exhausted() is exhausted

    def test_to_record_is_json_safe_camel_case(self):
        from sync_queue.models import QueuedOperation

        record = QueuedOperation(queue_id="q-1", table="cases", operation="update",
                                 record_id="c-1", data={"title": "T"}, timestamp=1).to_record()

        assert record == {
            "queueId": "q-1",
            "table": "cases",
            "operation": "update",
            "data": {"title": "T"},
            "recordId": "c-1",
            "timestamp": 1,
            "status": "pending",
            "retryCount": 0,
        }


class TestGenerateQueueId:
    def test_format_and_uniqueness(self):
        from sync_queue.models import generate_queue_id

        ids = {generate_queue_id() for _ in range(1000)}

        assert len(ids) == 1000
        assert all(queue_id.startswith("q-") for queue_id in ids)
