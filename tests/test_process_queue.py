"""
Tests for process_queue.py - the manual queue CLI.

Runs main() in-process against a temp data directory. Logging setup is
patched out so the root logger is left alone.
"""

import json

import httpx
import pytest
import respx


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch, tmp_path):
    monkeypatch.setattr("shared.logging_config.configure_logging", lambda level: None)
    monkeypatch.setenv("LEXSYNC_CONFIG_FILE", str(tmp_path / "absent.yml"))
    for name in ("LEXSYNC_REMOTE_URL", "LEXSYNC_STORAGE_KEY", "LEXSYNC_DATA_DIR", "LEXSYNC_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


def open_queue(data_dir):
    """Open the queue the way the CLI does, honoring LEXSYNC_* settings."""
    from process_queue import open_manager
    from validation.config import load_queue_settings

    settings, error = load_queue_settings(data_dir=data_dir)
    assert error is None
    return open_manager(settings)


def seed(data_dir, failures=3):
    """Enqueue one pending operation and one that failed `failures` times."""
    manager = open_queue(data_dir)
    pending = manager.enqueue("clients", "create", {"name": "A"})
    failed = manager.enqueue("cases", "update", {"status": "closed"}, record_id="case-1")
    for _ in range(failures):
        manager.set_status(failed, "syncing")
        manager.set_status(failed, "failed")
    return pending, failed


@pytest.fixture
def seeded(data_dir):
    """Queue with one pending and one exhausted operation (default budget of 3)."""
    return seed(data_dir)


class TestOpenManager:
    """open_manager builds the queue from settings, not from hardcoded defaults."""

    def test_data_dir_flag_overrides_env(self, monkeypatch, tmp_path, capsys):
        from process_queue import main

        env_dir = str(tmp_path / "env")
        flag_dir = str(tmp_path / "flag")
        monkeypatch.setenv("LEXSYNC_DATA_DIR", env_dir)
        seed(env_dir)

        assert main(["--data-dir", flag_dir, "list"]) == 0
        assert "Queue is empty." in capsys.readouterr().out

        assert main(["list"]) == 0
        assert "(exhausted)" in capsys.readouterr().out

    def test_settings_carry_retry_budget_and_strict_tables(self, monkeypatch, data_dir):
        from process_queue import open_manager
        from validation.config import load_queue_settings

        monkeypatch.setenv("LEXSYNC_MAX_RETRIES", "7")
        monkeypatch.setenv("LEXSYNC_STRICT_TABLES", "true")

        settings, error = load_queue_settings(data_dir=data_dir)
        manager = open_manager(settings)

        assert error is None
        assert manager.max_retries == 7
        assert manager.strict_tables is True

    def test_invalid_budget_fails(self, monkeypatch, data_dir):
        from process_queue import main

        monkeypatch.setenv("LEXSYNC_MAX_RETRIES", "0")

        assert main(["--data-dir", data_dir, "stats"]) == 1


class TestLocalCommands:
    def test_stats(self, data_dir, seeded, capsys):
        from process_queue import main

        assert main(["--data-dir", data_dir, "stats"]) == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["pending"] == 1
        assert stats["exhausted"] == 1
        assert stats["by_table"] == {"clients": 1, "cases": 1}

    def test_list(self, data_dir, seeded, capsys):
        from process_queue import main

        pending, exhausted = seeded

        assert main(["--data-dir", data_dir, "list"]) == 0

        out = capsys.readouterr().out
        assert pending in out
        assert f"{exhausted}" in out and "(exhausted)" in out

    def test_list_empty(self, data_dir, capsys):
        from process_queue import main

        assert main(["--data-dir", data_dir, "list"]) == 0
        assert "Queue is empty." in capsys.readouterr().out

    def test_requeue(self, data_dir, seeded, capsys):
        from process_queue import main

        assert main(["--data-dir", data_dir, "requeue"]) == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["requeued"] == 1
        assert open_queue(data_dir).pending_count() == 2

    def test_discard(self, data_dir, seeded, capsys):
        from process_queue import main

        pending, exhausted = seeded

        assert main(["--data-dir", data_dir, "discard", exhausted]) == 0

        assert "Discarded 1" in capsys.readouterr().out
        assert [op.queue_id for op in open_queue(data_dir).get_queue()] == [pending]

    def test_clear_completed(self, data_dir, seeded):
        from process_queue import main

        pending, _ = seeded

        assert main(["--data-dir", data_dir, "clear-completed"]) == 0
        assert [op.queue_id for op in open_queue(data_dir).get_queue()] == [pending]

    def test_clear(self, data_dir, seeded):
        from process_queue import main

        assert main(["--data-dir", data_dir, "clear"]) == 0
        assert open_queue(data_dir).get_queue() == []


class TestConfiguredRetryBudget:
    """With LEXSYNC_MAX_RETRIES=5, three failures leave retries to spare."""

    @pytest.fixture
    def budget_of_five(self, monkeypatch, data_dir):
        monkeypatch.setenv("LEXSYNC_MAX_RETRIES", "5")
        return seed(data_dir, failures=3)

    def test_stats_counts_failed_not_exhausted(self, data_dir, budget_of_five, capsys):
        from process_queue import main

        assert main(["--data-dir", data_dir, "stats"]) == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["exhausted"] == 0
        assert stats["failed"] == 1

    def test_list_does_not_label_exhausted(self, data_dir, budget_of_five, capsys):
        from process_queue import main

        assert main(["--data-dir", data_dir, "list"]) == 0
        assert "(exhausted)" not in capsys.readouterr().out

    def test_requeue_leaves_retryable_record_alone(self, data_dir, budget_of_five, capsys):
        from process_queue import main

        _, failed = budget_of_five

        assert main(["--data-dir", data_dir, "requeue"]) == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["requeued"] == 0
        ops = {op.queue_id: op for op in open_queue(data_dir).get_queue()}
        assert ops[failed].retry_count == 3
        assert open_queue(data_dir).pending_count() == 2


class TestSyncCommand:
    def test_missing_remote_url_fails(self, data_dir):
        from process_queue import main

        assert main(["--data-dir", data_dir, "sync"]) == 1

    def test_unreachable_remote_leaves_queue(self, data_dir, seeded):
        import remote.health
        import worker.service
        from process_queue import main

        with respx.mock:
            route = respx.get("http://127.0.0.1:9/rest/v1/").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            code = main(["--data-dir", data_dir, "--remote-url", "http://127.0.0.1:9", "sync"])

        assert code == 1
        assert route.called
        assert open_queue(data_dir).pending_count() == 1
        # The service keeps the real health check for later tests in the run
        assert worker.service.check_remote_health is remote.health.check_remote_health

    def test_empty_queue_succeeds_without_network(self, data_dir):
        from process_queue import main

        assert main(["--data-dir", data_dir, "--remote-url", "http://127.0.0.1:9", "sync"]) == 0
