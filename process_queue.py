#!/usr/bin/env python3
"""
Manual offline queue tool for lexsync.

Inspect the durable offline queue, replay it against the remote store on
demand, and recover or discard operations that exhausted their retries.

Usage:
    python process_queue.py [--data-dir DIR] stats
    python process_queue.py list
    python process_queue.py --remote-url https://db.example.com --api-key KEY sync
    python process_queue.py requeue [QUEUE_ID ...]
    python process_queue.py discard QUEUE_ID [QUEUE_ID ...]
    python process_queue.py clear-completed
    python process_queue.py clear
"""

import argparse
import asyncio
import json
import os
import sys

from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Manual")


def open_manager(settings):
    """
    Open the persistent queue described by settings without touching the network.

    The manager carries the configured retry budget, so exhausted/failed
    labels and requeue eligibility match what the sync service sees.
    """
    from sync_queue.manager import OfflineQueueManager
    from sync_queue.store import PersistentKeyValueStore, QueueStore

    store = QueueStore(PersistentKeyValueStore(settings.data_dir), key=settings.storage_key)
    return OfflineQueueManager(
        store,
        max_retries=settings.max_retries,
        strict_tables=settings.strict_tables,
    )


def print_stats(manager):
    from sync_queue.operations import get_stats, get_table_breakdown

    stats = get_stats(manager)
    stats['by_table'] = get_table_breakdown(manager)
    print(json.dumps(stats, indent=2))
    return 0


def print_queue(manager):
    queue = manager.get_queue()
    if not queue:
        print("Queue is empty.")
        return 0
    for op in queue:
        exhausted = " (exhausted)" if op.is_exhausted(manager.max_retries) else ""
        record = f" id={op.record_id}" if op.record_id else ""
        print(
            f"{op.queue_id}  {op.operation.value:<6} {op.table}{record}  "
            f"{op.status.value} retries={op.retry_count}{exhausted}"
        )
    return 0


async def run_sync(settings):
    """Replay the queue once. Returns a process exit code."""
    from remote.health import check_remote_health
    from worker.service import OfflineSyncService

    service = OfflineSyncService.from_settings(settings)
    try:
        pending = service.manager.pending_count()
        if pending == 0:
            log_info("Queue is empty. Nothing to sync.")
            return 0

        healthy, latency_ms = await check_remote_health(
            service.remote, timeout=settings.health_check_timeout
        )
        if not healthy:
            log_error(f"Remote store at {settings.remote_url} is unreachable; {pending} change(s) left queued")
            return 1
        log_info(f"Remote store reachable ({latency_ms:.0f}ms), syncing {pending} change(s)")

        def on_progress(synced, total):
            log_debug(f"Progress: {synced}/{total}")

        result = await service.engine.sync(on_progress=on_progress)
        log_info(f"Sync complete. Synced: {result.synced}, Failed: {result.failed}")

        exhausted = len(service.manager.exhausted_operations())
        if exhausted:
            log_warn(f"{exhausted} operation(s) exhausted their retries; use 'requeue' or 'discard'")
        return 0 if result.failed == 0 else 1
    finally:
        await service.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Inspect and process the lexsync offline queue')
    parser.add_argument('--data-dir', '-d', help='Path to lexsync data directory (or set LEXSYNC_DATA_DIR)')
    parser.add_argument('--remote-url', help='Remote store URL (or set LEXSYNC_REMOTE_URL)')
    parser.add_argument('--api-key', help='Remote store API key (or set LEXSYNC_REMOTE_API_KEY)')
    parser.add_argument('--log-level', default=None, help='trace, debug, info, warning or error')

    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('stats', help='Show queue counts as JSON')
    commands.add_parser('list', help='List queued operations')
    commands.add_parser('sync', help='Replay retryable operations now')
    commands.add_parser('clear-completed', help='Remove every operation that is not pending')
    commands.add_parser('clear', help='Remove every operation')
    requeue = commands.add_parser('requeue', help='Give exhausted operations a fresh retry budget')
    requeue.add_argument('queue_ids', nargs='*', help='Ids to requeue (default: all exhausted)')
    discard = commands.add_parser('discard', help='Remove specific operations')
    discard.add_argument('queue_ids', nargs='+', help='Ids to remove')

    args = parser.parse_args(argv)

    from shared.logging_config import configure_logging
    configure_logging(args.log_level or os.environ.get('LEXSYNC_LOG_LEVEL', 'info'))

    if args.command == 'sync':
        from validation.config import load_settings

        settings, error = load_settings(
            remote_url=args.remote_url,
            remote_api_key=args.api_key,
            data_dir=args.data_dir,
            log_level=args.log_level,
        )
        if settings is None:
            log_error(f"Invalid configuration: {error}")
            log_error("Set LEXSYNC_REMOTE_URL (and LEXSYNC_REMOTE_API_KEY) or pass --remote-url/--api-key")
            return 1
        settings.log_config()
        return asyncio.run(run_sync(settings))

    from validation.config import load_queue_settings

    settings, error = load_queue_settings(data_dir=args.data_dir, log_level=args.log_level)
    if settings is None:
        log_error(f"Invalid configuration: {error}")
        return 1
    log_debug(f"Using data directory: {settings.data_dir} (max_retries={settings.max_retries})")

    manager = open_manager(settings)

    if args.command == 'stats':
        return print_stats(manager)

    if args.command == 'list':
        return print_queue(manager)

    if args.command == 'clear-completed':
        manager.clear_completed()
        return 0

    if args.command == 'clear':
        manager.clear_all()
        return 0

    if args.command == 'requeue':
        from sync_queue.recovery import requeue_exhausted

        result = requeue_exhausted(manager, args.queue_ids or None)
        print(json.dumps({
            'requeued': result.requeued,
            'skipped_not_exhausted': result.skipped_not_exhausted,
            'invalid': result.invalid,
            'new_queue_ids': result.new_queue_ids,
        }, indent=2))
        return 0

    if args.command == 'discard':
        from sync_queue.recovery import discard as discard_operations

        removed = discard_operations(manager, args.queue_ids)
        print(f"Discarded {removed} operation(s)")
        return 0

    parser.error(f"Unknown command: {args.command}")


if __name__ == '__main__':
    sys.exit(main())
