"""
Error types shared by the sync engine and the offline mutation wrapper.

Every failed replay marks the operation failed regardless of cause, so no
retry decision depends on the kind of failure. The one distinction that
drives behavior is connectivity: a live write that could not reach the
remote store is queued, any other failure is surfaced to the caller.
"""

import asyncio

from remote.client import RemoteConnectionError


class PermanentError(Exception):
    """Write can never succeed as queued (e.g. update/delete without a record id)."""
    pass


def is_connectivity_error(exc: BaseException) -> bool:
    """True if the failure means the remote store could not be reached at all."""
    return isinstance(
        exc,
        (RemoteConnectionError, ConnectionError, TimeoutError, asyncio.TimeoutError, OSError),
    )


__all__ = [
    'PermanentError',
    'is_connectivity_error',
]
