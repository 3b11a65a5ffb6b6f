"""
Tests for worker/mutations.py - OfflineMutator.
"""

import pytest

from remote.client import RemoteConnectionError, RemoteRequestError


@pytest.fixture
def connectivity():
    """Mutable online flag read by the mutator."""
    return {"online": True}


@pytest.fixture
def mutator(manager, mock_remote, connectivity):
    from worker.mutations import OfflineMutator

    return OfflineMutator(manager, mock_remote, lambda: connectivity["online"])


class TestOnline:
    @pytest.mark.asyncio
    async def test_create_goes_straight_to_remote(self, mutator, manager, mock_remote):
        result = await mutator.mutate("clients", "create", {"name": "Acme"})

        assert result.offline is False
        assert result.queue_id is None
        assert result.data == {"id": "new-1", "name": "Acme"}
        assert manager.get_queue() == []

    @pytest.mark.asyncio
    async def test_update_uses_id_from_payload(self, mutator, mock_remote):
        await mutator.mutate("cases", "update", {"id": "c-1", "status": "closed"})

        mock_remote.update.assert_awaited_once_with("cases", "c-1", {"status": "closed"})

    @pytest.mark.asyncio
    async def test_unreachable_remote_falls_back_to_queue(self, mutator, manager, mock_remote):
        mock_remote.insert.side_effect = RemoteConnectionError("down")

        result = await mutator.mutate("clients", "create", {"name": "Acme"})

        assert result.offline is True
        assert manager.get(result.queue_id).data == {"name": "Acme"}

    @pytest.mark.asyncio
    async def test_rejected_write_is_raised_not_queued(self, mutator, manager, mock_remote):
        mock_remote.insert.side_effect = RemoteRequestError("forbidden", 403)

        with pytest.raises(RemoteRequestError):
            await mutator.mutate("clients", "create", {"name": "Acme"})

        assert manager.get_queue() == []


class TestOffline:
    @pytest.mark.asyncio
    async def test_offline_write_is_queued(self, mutator, manager, mock_remote, connectivity):
        connectivity["online"] = False

        result = await mutator.mutate("cases", "delete", {"id": "c-9"})

        assert result.offline is True
        op = manager.get(result.queue_id)
        assert op.operation.value == "delete"
        assert op.record_id == "c-9"
        mock_remote.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_payload_rejected_offline(self, mutator, manager, connectivity):
        from validation.payloads import PayloadValidationError

        connectivity["online"] = False

        with pytest.raises(PayloadValidationError):
            await mutator.mutate("cases", "create", {"title": "No client"})

        assert manager.get_queue() == []
